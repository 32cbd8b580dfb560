"""Configuration for the RPM packager."""

import os
from pathlib import Path

# rpmbuild tree (rpmdev-setuptree layout)
RPM_TOPDIR = Path.home() / 'rpmbuild'
RPM_SUBDIRS = ('BUILD', 'BUILDROOT', 'RPMS', 'SOURCES', 'SPECS', 'SRPMS')

# Accepted version strings
NUMERIC_VERSION_PATTERN = r'[0-9]+(?:\.[0-9]+){1,3}'
SUFFIX_PATTERN = r'(?:[-+][A-Za-z0-9._-]+)?'

DEFAULT_RELEASE = '1'
HTTP_TIMEOUT = 60

# signal-cli upstream
SIGNAL_CLI_NAME = 'signal-cli'
SIGNAL_CLI_REPO = 'AsamK/signal-cli'
SIGNAL_CLI_API_URL = 'https://api.github.com/repos/{repo}/releases'
SIGNAL_CLI_RELEASES_PAGE = 'https://github.com/{repo}/releases'
SIGNAL_CLI_RELEASE_URL = 'https://github.com/AsamK/signal-cli/releases/download/v{version}/signal-cli-{version}.tar.gz'
SIGNAL_CLI_INSTALL_PREFIX = '/opt'
SIGNAL_CLI_JAVA_PACKAGE = 'java-21-openjdk-headless'

# Native libsignal builds for Linux
LIBSIGNAL_NATIVE_URL = (
    'https://github.com/exquo/signal-libs-build/releases/download/'
    'libsignal_v{version}/libsignal_jni.so-v{version}-{triple}.tar.gz'
)
LIBSIGNAL_JAR_PREFIX = 'libsignal-client'
LIBSIGNAL_JAR_SUFFIX = 'jar'
LIBSIGNAL_ENTRY_NAME = 'libsignal_jni.so'

# Every name the native library has been shipped under inside the jar
LIBSIGNAL_HISTORICAL_ENTRIES = (
    'libsignal_jni.so',
    'libsignal_jni_amd64.so',
    'libsignal_jni_aarch64.so',
    'libsignal_jni.dylib',
    'libsignal_jni_amd64.dylib',
    'libsignal_jni_aarch64.dylib',
    'signal_jni.dll',
    'signal_jni_amd64.dll',
    'signal_jni_aarch64.dll',
)

# uname -m -> Rust target triple of the native build
ARCH_TRIPLES = {
    'x86_64': 'x86_64-unknown-linux-gnu',
    'aarch64': 'aarch64-unknown-linux-gnu',
}

# Extracted bundle search
SEARCH_DEPTH = 4
NATIVE_LIBRARY_GLOB = 'lib*.so*'

# Daemon defaults
DAEMON_NAME = 'magicbot'
DAEMON_SUMMARY = 'MagicBot - Signal group guard bot'
DAEMON_LICENSE = 'MIT'
DAEMON_URL = 'https://github.com/xujiegb/{name}'
DAEMON_DESCRIPTION = 'Signal group guard bot daemon'
DOC_CANDIDATES = ('README', 'README.md', 'README.txt')
LICENSE_CANDIDATES = ('LICENSE', 'LICENSE.txt', 'LICENSE.md', 'COPYING', 'NOTICE')

# Build dependencies (Fedora/RHEL)
DNF_PACKAGES = [
    'git', 'ca-certificates', 'curl',
    'gcc', 'gcc-c++', 'make',
    'pkgconf-pkg-config',
    'openssl-devel',
    'tar', 'gzip', 'findutils', 'which',
    'rpm-build', 'rpmdevtools',
    'systemd-rpm-macros',
    'shadow-utils',
]

SUDO_REFRESH_INTERVAL = 30

PACKAGER = 'packager <packager@localhost>'


def cargo_home() -> Path:
    """Return the cargo toolchain directory, honouring CARGO_HOME."""
    return Path(os.environ.get('CARGO_HOME', Path.home() / '.cargo'))
