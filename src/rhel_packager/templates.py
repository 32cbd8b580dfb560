"""Templates for generated spec files and systemd units."""

from datetime import date
from pathlib import Path
from string import Template

SPEC_TEMPLATE = Template("""\
Name:           ${name}
Version:        ${version}
Release:        ${release}%{?dist}
Summary:        ${summary}

License:        ${license}
URL:            ${url}
Source0:        %{name}-%{version}.tar.gz

# prebuilt binaries in Source0
%global debug_package %{nil}

BuildArch:      ${arch}
${requires}
%description
${description}

%prep
%autosetup -n %{name}-%{version}

%build
# nothing to build, Source0 already holds the binaries

%install
rm -rf %{buildroot}
${install}
${hooks}%files
${files}

%changelog
* ${changelog_date} ${packager} - ${version}-${release}
- Automated build of ${nvr}
""")

SERVICE_UNIT = Template("""\
[Unit]
Description=${description}
After=network-online.target
Wants=network-online.target

[Service]
Type=simple
User=${user}
Group=${group}
WorkingDirectory=/
ExecStart=/usr/bin/${name} --daemon
Restart=always
RestartSec=2
Environment=RUST_BACKTRACE=1

NoNewPrivileges=true
PrivateTmp=true
ProtectSystem=full
ProtectHome=true

ReadWritePaths=${state_dir} ${run_dir} ${log_dir}

[Install]
WantedBy=multi-user.target
""")

DAEMON_INSTALL = Template("""\
install -D -m 0755 %{name} %{buildroot}%{_bindir}/%{name}
install -D -m 0644 %{name}.service %{buildroot}%{_unitdir}/%{name}.service
install -d -m 0755 %{buildroot}${state_dir}
install -d -m 0755 %{buildroot}${log_dir}
install -d -m 0755 %{buildroot}${run_dir}""")

DAEMON_PRE = Template("""\
getent group ${group} >/dev/null || groupadd -r ${group}
getent passwd ${user} >/dev/null || useradd -r -g ${group} -d ${state_dir} -s /sbin/nologin -c "${name} service user" ${user}
exit 0""")

DAEMON_POST = Template("""\
chown -R ${user}:${group} ${state_dir} || :
chown -R ${user}:${group} ${log_dir} || :
chown -R ${user}:${group} ${run_dir} || :
%systemd_post %{name}.service""")

DAEMON_PREUN = '%systemd_preun %{name}.service'

DAEMON_POSTUN = '%systemd_postun_with_restart %{name}.service'

SIGNAL_CLI_INSTALL = Template("""\
mkdir -p %{buildroot}${install_dir} %{buildroot}%{_bindir}
cp -a bin lib %{buildroot}${install_dir}/
ln -sf ${install_dir}/bin/${launcher} %{buildroot}%{_bindir}/${launcher}""")

HOOK_ORDER = ('pre', 'post', 'preun', 'postun')


def render_hooks(hooks: dict[str, str]) -> str:
    """Render the scriptlet sections in rpm's conventional order."""
    return ''.join(f'%{section}\n{hooks[section]}\n\n' for section in HOOK_ORDER if hooks.get(section))


def render_spec(  # noqa: PLR0913
    *,
    name: str,
    version: str,
    release: str,
    arch: str,
    summary: str,
    license: str,  # noqa: A002
    url: str,
    description: str,
    install: str,
    files: list[str],
    requires: list[str] | None = None,
    hooks: dict[str, str] | None = None,
    packager: str,
    changelog_date: date | None = None,
) -> str:
    """Render an RPM spec file."""
    requires_lines = ''.join(f'Requires:       {req}\n' for req in requires or [])
    return SPEC_TEMPLATE.substitute(
        name=name,
        version=version,
        release=release,
        arch=arch,
        summary=summary,
        license=license,
        url=url,
        requires=requires_lines,
        description=description.strip(),
        install=install,
        hooks='\n' + render_hooks(hooks or {}),
        files='\n'.join(files),
        changelog_date=(changelog_date or date.today()).strftime('%a %b %d %Y'),
        packager=packager,
        nvr=f'{name}-{version}-{release}',
    )


def render_service_unit(
    *,
    name: str,
    description: str,
    user: str,
    group: str,
    state_dir: str,
    run_dir: str,
    log_dir: str,
) -> str:
    """Render the systemd unit of the daemon."""
    return SERVICE_UNIT.substitute(
        name=name,
        description=description,
        user=user,
        group=group,
        state_dir=state_dir,
        run_dir=run_dir,
        log_dir=log_dir,
    )


def write_service_unit(build_dir: Path, name: str, unit: str) -> Path:
    """Write ``<name>.service`` into the build directory."""
    service_file = build_dir / f'{name}.service'
    service_file.write_text(unit)
    return service_file
