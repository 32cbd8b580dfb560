"""Build RPM packages for signal-cli and a custom systemd daemon."""

__version__ = '0.1.0'
