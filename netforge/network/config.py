#
#  MIT License
#
#  (C) Copyright 2023 Hewlett Packard Enterprise Development LP
#
#  Permission is hereby granted, free of charge, to any person obtaining a
#  copy of this software and associated documentation files (the "Software"),
#  to deal in the Software without restriction, including without limitation
#  the rights to use, copy, modify, merge, publish, distribute, sublicense,
#  and/or sell copies of the Software, and to permit persons to whom the
#  Software is furnished to do so, subject to the following conditions:
#
#  The above copyright notice and this permission notice shall be included
#  in all copies or substantial portions of the Software.
#
#  THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
#  IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
#  FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL
#  THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR
#  OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE,
#  ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR
#  OTHER DEALINGS IN THE SOFTWARE.
#
"""
Handles network configuration: the operations behind the command line and
manifests.
"""
import os

import click
from yaml import safe_load
from yaml import YAMLError

from netforge.config import settings
from netforge.config import target_path
from netforge.logger import Logger
from netforge.network import manager
from netforge.network import sysconfig
from netforge.network.service import Notifier
from netforge.network.service import service_name
from netforge.os import OSRelease
from netforge.os import os_release

LOG = Logger(__name__)

MANAGER_OPTIONS = ('root', 'os_id', 'os_version', 'dry_run', 'defer')
GLOBAL_KEYS = {
    'hostname',
    'gateway',
    'gatewaydev',
    'ipv6gateway',
    'ipv6defaultdev',
    'nisdomain',
    'vlan',
    'ipv6networking',
    'nozeroconf',
    'restart',
}
INTERFACE_KEYS = {
    'ensure',
    'ipaddress',
    'netmask',
    'gateway',
    'macaddress',
    'manage_hwaddr',
    'bootproto',
    'mtu',
    'userctl',
    'peerdns',
    'dns1',
    'dns2',
    'domain',
    'dhcp_hostname',
    'ethtool_opts',
    'bonding_opts',
    'bridge',
    'linkdelay',
    'scope',
    'check_link_down',
    'defroute',
    'zone',
    'metric',
    'nm_controlled',
    'ipv6init',
    'ipv6address',
    'ipv6gateway',
    'ipv6autoconf',
    'ipv6peerdns',
    'ipv6secondaries',
    'restart',
    'flush',
}
ALIAS_KEYS = {
    'ensure',
    'ipaddress',
    'netmask',
    'gateway',
    'noaliasrouting',
    'arpcheck',
    'zone',
    'metric',
    'nm_controlled',
    'restart',
}
ROUTE_KEYS = {'ipaddress', 'netmask', 'gateway', 'restart'}
MANIFEST_SECTIONS = {
    'global': GLOBAL_KEYS,
    'interfaces': INTERFACE_KEYS,
    'aliases': ALIAS_KEYS,
    'routes': ROUTE_KEYS,
}


class NetworkError(Exception):

    """
    An exception for network problems.
    """

    def __init__(self, message) -> None:
        self.message = message
        super().__init__(self.message)


class ManifestError(Exception):

    """
    An exception for malformed manifests.
    """

    def __init__(self, message) -> None:
        self.message = message
        super().__init__(self.message)


def _split(kwargs: dict) -> tuple[dict, dict]:
    """
    Splits keyword arguments into network manager options and resource
    parameters. Unset (``None``) parameters are dropped so defaults apply.
    """
    options = {key: kwargs.get(key) for key in MANAGER_OPTIONS}
    params = {
        key: value for key, value in kwargs.items()
        if key not in MANAGER_OPTIONS and value is not None
    }
    return options, params


def resolve_os_release(
        root: str = '/',
        os_id: str = None,
        os_version: str = None,
) -> OSRelease:
    """
    Resolves the target's identity, from the given overrides or from its
    ``os-release`` file.

    :param root: The target root filesystem.
    :param os_id: An ``os-release`` ``ID`` overriding detection.
    :param os_version: An ``os-release`` ``VERSION_ID`` overriding detection.
    """
    if os_id:
        return OSRelease.from_fields({
            'ID': os_id,
            'VERSION_ID': os_version or '',
        })
    release = os_release(root)
    if os_version:
        release.version = os_version
    return release


def resolve_network_manager(**kwargs) -> tuple[sysconfig.Sysconfig, Notifier]:
    """
    Resolves the target's network manager, and a notifier for restarting its
    network service.

    :keyword root: The target root filesystem.
    :keyword os_id: Overrides the detected operating system.
    :keyword os_version: Overrides the detected operating system version.
    :keyword dry_run: Report changes without writing.
    :keyword defer: Write files without restarting the network service.
    :raises NetworkError: When the target does not use ``sysconfig``.
    """
    options = settings()
    root = kwargs.get('root') or options.get('root', '/')
    release = resolve_os_release(
        root,
        kwargs.get('os_id'),
        kwargs.get('os_version'),
    )
    LOG.info('Detected OS: %s', release)
    service_name(release)
    sysconfig_dir = os.path.dirname(
        target_path(root, options['paths']['sysconfig'])
    )
    if not os.path.isdir(sysconfig_dir):
        raise NetworkError(
            f'Unknown network manager; {sysconfig_dir} does not exist.'
        )
    network_manager = sysconfig.Sysconfig(
        release,
        root=root,
        paths=options['paths'],
        banner=options.get('banner', ''),
        dry_run=bool(kwargs.get('dry_run')),
    )
    notifier = Notifier(
        release,
        defer=bool(kwargs.get('defer') or kwargs.get('dry_run')),
    )
    LOG.info('Detected network manager: %s', network_manager)
    return network_manager, notifier


def configure_system(network_manager, notifier, **params) -> bool:
    """
    Converges the host-wide settings.
    """
    network_settings = manager.NetworkSettings(**params)
    changed = network_manager.write_global(network_settings)
    notifier.notify(changed, network_settings.restart)
    if changed and network_settings.hostname:
        notifier.set_hostname(network_settings.hostname)
    return changed


def configure_interface(
        network_manager,
        notifier,
        isalias: bool = False,
        **params,
) -> bool:
    """
    Converges an interface or alias, or removes it when ``remove`` is set.
    """
    name = params.get('name') or ''
    LOG.info('Working on interface [%s] ... ', name)
    if not manager.DEVICE_REGEX.match(name) \
            and not manager.ALIAS_REGEX.match(name):
        raise manager.InterfaceError(f'Invalid interface name [{name}].')
    if params.pop('remove', False):
        changed = network_manager.remove_config(name)
        notifier.notify(changed, manager.to_bool(params.get('restart', True)))
        return changed
    interface = manager.Interface(isalias=isalias, **params)
    if isalias and interface.ipaddr is None:
        raise manager.InterfaceError(
            f'Alias [{interface.name}] needs an ipaddress.'
        )
    changed = network_manager.write_config(interface)
    notifier.notify(changed, interface.restart)
    if changed and interface.flush:
        notifier.flush(interface.device)
    return changed


def configure_routes(network_manager, notifier, **params) -> bool:
    """
    Converges the static routes of an interface, given as parallel
    ``ipaddress``/``netmask``/``gateway`` lists or as ``routes`` pairs.
    """
    if 'routes' in params:
        routes = manager.Routes.from_cidrs(**params)
    else:
        routes = manager.Routes(**params)
    changed = network_manager.write_routes(routes)
    notifier.notify(changed, routes.restart)
    return changed


def system(**kwargs) -> bool:
    """
    Configures the system with the given network options.
    :param kwargs: Host-wide settings and network manager options.
    """
    options, params = _split(kwargs)
    network_manager, notifier = resolve_network_manager(**options)
    changed = configure_system(network_manager, notifier, **params)
    notifier.fire()
    return changed


def interface(**kwargs) -> bool:
    """
    Configure the given interface.
    :param kwargs: Interface parameters and network manager options.
    """
    options, params = _split(kwargs)
    network_manager, notifier = resolve_network_manager(**options)
    changed = configure_interface(network_manager, notifier, **params)
    notifier.fire()
    return changed


def alias(**kwargs) -> bool:
    """
    Configure the given alias interface.
    :param kwargs: Alias parameters and network manager options.
    """
    options, params = _split(kwargs)
    network_manager, notifier = resolve_network_manager(**options)
    changed = configure_interface(
        network_manager,
        notifier,
        isalias=True,
        **params,
    )
    notifier.fire()
    return changed


def route(**kwargs) -> bool:
    """
    Configure static routes for the given interface.
    :param kwargs: Route parameters and network manager options.
    """
    options, params = _split(kwargs)
    network_manager, notifier = resolve_network_manager(**options)
    changed = configure_routes(network_manager, notifier, **params)
    notifier.fire()
    return changed


def load_manifest(path: str) -> dict:
    """
    Loads and validates a manifest.

    :param path: Path to a YAML manifest.
    :raises ManifestError: When the manifest can not be read or holds
        unknown sections or parameters.
    """
    try:
        with open(path, 'r', encoding='utf-8') as manifest_file:
            manifest = safe_load(manifest_file.read()) or {}
    except (OSError, YAMLError) as error:
        raise ManifestError(f'Could not load {path}: {error}') from error
    if not isinstance(manifest, dict):
        raise ManifestError(f'{path} must hold a mapping.')
    unknown = set(manifest) - set(MANIFEST_SECTIONS)
    if unknown:
        raise ManifestError(
            f'Unknown manifest section(s): {", ".join(sorted(unknown))}'
        )
    _check_keys('global', manifest.get('global') or {}, GLOBAL_KEYS)
    for section in ('interfaces', 'aliases', 'routes'):
        resources = manifest.get(section) or {}
        if not isinstance(resources, dict):
            raise ManifestError(f'[{section}] must map names to parameters.')
        for name, params in resources.items():
            _check_keys(
                f'{section}.{name}',
                params or {},
                MANIFEST_SECTIONS[section],
            )
    return manifest


def _check_keys(where: str, params: dict, allowed: set) -> None:
    """
    Rejects parameters a resource does not know.
    """
    if not isinstance(params, dict):
        raise ManifestError(f'[{where}] must hold a mapping.')
    unknown = set(params) - allowed
    if unknown:
        raise ManifestError(
            f'Unknown parameter(s) in [{where}]: {", ".join(sorted(unknown))}'
        )


def apply(manifest_path: str, **kwargs) -> bool:
    """
    Converges every resource in a manifest, then restarts the network service
    once if anything changed.

    :param manifest_path: Path to a YAML manifest.
    :param kwargs: Network manager options.
    """
    manifest = load_manifest(manifest_path)
    options, _ = _split(kwargs)
    network_manager, notifier = resolve_network_manager(**options)
    changed = False
    try:
        if manifest.get('global') is not None:
            changed = configure_system(
                network_manager, notifier, **manifest['global']
            ) or changed
        for name, params in (manifest.get('interfaces') or {}).items():
            changed = configure_interface(
                network_manager, notifier, name=str(name), **(params or {})
            ) or changed
        for name, params in (manifest.get('aliases') or {}).items():
            changed = configure_interface(
                network_manager,
                notifier,
                isalias=True,
                name=str(name),
                **(params or {}),
            ) or changed
        for name, params in (manifest.get('routes') or {}).items():
            changed = configure_routes(
                network_manager, notifier, name=str(name), **(params or {})
            ) or changed
    finally:
        # Fires for the files written before a failing resource too.
        notifier.fire()
    if not changed:
        click.echo('Nothing to do; all files are up to date.')
    return changed
