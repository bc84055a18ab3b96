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
The netforge command line.
"""

import sys

import click
from click_option_group import optgroup
from click_option_group import MutuallyExclusiveOptionGroup

from netforge.network import config
from netforge.network.manager import InterfaceError
from netforge.network.service import ServiceError
from netforge.os import PlatformError
from netforge.logger import Logger

CONTEXT_SETTINGS = {'help_option_names': ['-h', '--help']}
LOG = Logger(__name__)
ERRORS = (
    InterfaceError,
    PlatformError,
    ServiceError,
    config.NetworkError,
    config.ManifestError,
)


def _run(ctx: click.Context, operation, **kwargs) -> None:
    """
    Runs an operation with the global options, exiting on failure.

    :param ctx: The click context holding the global options.
    :param operation: The operation to run.
    """
    try:
        changed = operation(**ctx.obj, **kwargs)
    except ERRORS as error:
        LOG.critical(error.message)
        sys.exit(f'Failed! {error.message}')
    except IOError as error:
        LOG.critical(error)
        sys.exit(f'Root permission needed: {error}')
    if not changed:
        click.echo('No changes.')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option()
@click.option(
    '--root',
    metavar='<directory path>',
    default=None,
    help='Root of the target filesystem (default: /, or the settings file).'
)
@click.option(
    '--os-id',
    metavar='<ID>',
    default=None,
    help='Override the detected OS (an os-release ID, e.g. rhel).'
)
@click.option(
    '--os-version',
    metavar='<VERSION_ID>',
    default=None,
    help='Override the detected OS version (e.g. 7.9).'
)
@click.option(
    '--dry-run',
    is_flag=True,
    default=False,
    help='Show what would change without writing anything.'
)
@click.option(
    '--defer',
    is_flag=True,
    default=False,
    help='Write config files but do not restart the network service.'
)
@click.pass_context
def netforge(ctx: click.Context, **kwargs) -> None:
    """
    Declarative network-scripts configuration.

    \f
    """
    ctx.obj = kwargs
    LOG.info('Invoked with: %s', kwargs)


@netforge.group()
def network() -> None:
    """
    Functions for configuring the server's network.

    \f
    """
    LOG.info('Invoked network group.')


def _restart_option(function):
    """
    Adds ``--no-restart``.
    """
    return click.option(
        '--no-restart',
        is_flag=True,
        default=False,
        help='Do not restart the network service when the file changes.'
    )(function)


@network.command()
@click.option('--hostname', help='The fully qualified hostname.')
@click.option('--gateway', help='The default gateway IP.')
@click.option('--gatewaydev', help='The default gateway device.')
@click.option('--ipv6gateway', help='The default IPv6 gateway.')
@click.option('--ipv6defaultdev', help='The default IPv6 gateway device.')
@click.option('--nisdomain', help='The NIS domain.')
@click.option('--vlan', is_flag=True, default=False, help='Enable VLANs.')
@click.option(
    '--ipv6networking',
    is_flag=True,
    default=False,
    help='Enable IPv6 networking.'
)
@click.option(
    '--nozeroconf',
    is_flag=True,
    default=False,
    help='Disable the zeroconf (169.254.0.0/16) route.'
)
@_restart_option
@click.pass_context
def system(ctx: click.Context, no_restart: bool, **kwargs) -> None:
    # pylint: disable=invalid-name
    """
    Configures global network settings.
    """
    LOG.info('Calling network system with: %s', kwargs)
    _run(ctx, config.system, restart=not no_restart, **kwargs)


@network.command()
@optgroup.group(
    'Address options', cls=MutuallyExclusiveOptionGroup, )
@optgroup.option(
    '--dhcp',
    is_flag=True,
    default=False,
    help='Use DHCP.'
)
@optgroup.option(
    '--bootp',
    is_flag=True,
    default=False,
    help='Use BOOTP.'
)
@optgroup.option(
    '--remove',
    is_flag=True,
    is_eager=True,
    default=False,
    help='Removes the given interface.'
)
@click.argument('interface')
@click.argument('cidr', required=False)
@click.option(
    '--netmask',
    help='The netmask, when CIDR is given without a prefix length.'
)
@click.option(
    '--gateway',
    help='The gateway IP for this interface.'
)
@click.option(
    '--ensure',
    type=click.Choice(['up', 'down']),
    default='up',
    help='Whether the interface starts at boot (default: up).'
)
@click.option('--macaddress', help='The hardware address to pin.')
@click.option(
    '--no-hwaddr',
    is_flag=True,
    default=False,
    help='Do not write HWADDR even if a MAC address is given.'
)
@click.option('--mtu', type=int, help='A custom MTU setting.')
@click.option(
    '--peerdns',
    is_flag=True,
    default=False,
    help='Write DNS servers and domain to resolv.conf.'
)
@click.option('--dns1', help='Primary DNS server.')
@click.option('--dns2', help='Secondary DNS server.')
@click.option('--domain', help='Search domain(s), space delimited.')
@click.option('--dhcp-hostname', help='Hostname to send to the DHCP server.')
@click.option('--ethtool-opts', help='Options passed to ethtool.')
@click.option('--bonding-opts', help='Bonding driver options.')
@click.option('--bridge', help='The bridge this interface is enslaved to.')
@click.option('--defroute', type=click.Choice(['yes', 'no']))
@click.option('--zone', help='The firewalld zone.')
@click.option('--metric', type=int, help='The route metric.')
@click.option('--ipv6address', help='An IPv6 address (CIDR notation).')
@click.option('--ipv6gateway', help='The IPv6 gateway.')
@click.option(
    '--ipv6secondaries',
    help='A comma delimited list of secondary IPv6 addresses.'
)
@click.option(
    '--ipv6init',
    is_flag=True,
    default=False,
    help='Enable IPv6 (implied by --ipv6address).'
)
@click.option(
    '--userctl',
    is_flag=True,
    default=False,
    help='Allow non-root users to control the interface.'
)
@click.option(
    '--nm-controlled',
    is_flag=True,
    default=False,
    help='Let NetworkManager control the interface.'
)
@click.option(
    '--flush',
    is_flag=True,
    default=False,
    help='Flush the interface addresses before restarting.'
)
@_restart_option
@click.pass_context
def interface(ctx: click.Context, **kwargs) -> None:
    # pylint: disable=invalid-name
    """
    Configures an interface with an ifcfg file.

    \b
    INTERFACE to configure.
    CIDR a static IP to assign (A.B.C.D/E, or A.B.C.D with --netmask).
    \f

    """
    LOG.info('Calling network interface with: %s', kwargs)
    if kwargs.get('cidr') is None and \
            not kwargs.get('dhcp', False) and \
            not kwargs.get('bootp', False) and \
            not kwargs.get('remove', False):
        click.echo(
            'Missing arguments. DHCP or BOOTP must be true, a CIDR must '
            'be given, or remove must be passed.'
        )
        LOG.error('DHCP was false, and no CIDR was given.')
        sys.exit(2)
    bootproto = None
    if kwargs.pop('dhcp'):
        bootproto = 'dhcp'
    if kwargs.pop('bootp'):
        bootproto = 'bootp'
    _run(
        ctx,
        config.interface,
        name=kwargs.pop('interface'),
        ipaddress=kwargs.pop('cidr'),
        bootproto=bootproto,
        manage_hwaddr=not kwargs.pop('no_hwaddr'),
        restart=not kwargs.pop('no_restart'),
        **kwargs,
    )


@network.command()
@click.argument('alias_name', metavar='ALIAS')
@click.argument('cidr', required=False)
@click.option(
    '--netmask',
    help='The netmask, when CIDR is given without a prefix length.'
)
@click.option('--gateway', help='The gateway IP for this alias.')
@click.option(
    '--ensure',
    type=click.Choice(['up', 'down']),
    default='up',
    help='Whether the alias starts with its parent (default: up).'
)
@click.option(
    '--noaliasrouting',
    is_flag=True,
    default=False,
    help='Do not add routes for the alias network.'
)
@click.option(
    '--no-arpcheck',
    is_flag=True,
    default=False,
    help='Skip the duplicate address check.'
)
@click.option('--zone', help='The firewalld zone.')
@click.option('--metric', type=int, help='The route metric.')
@click.option(
    '--remove',
    is_flag=True,
    default=False,
    help='Removes the given alias.'
)
@_restart_option
@click.pass_context
def alias(ctx: click.Context, **kwargs) -> None:
    """
    Configures an alias interface (a secondary IP on a device).

    \b
    ALIAS to configure, as <device>:<label> (e.g. eth0:1).
    CIDR a static IP to assign (A.B.C.D/E, or A.B.C.D with --netmask).
    \f
    """
    LOG.info('Calling network alias with: %s', kwargs)
    if kwargs.get('cidr') is None and not kwargs.get('remove'):
        click.echo('Missing arguments. A CIDR must be given.')
        LOG.error('No CIDR was given for the alias.')
        sys.exit(2)
    _run(
        ctx,
        config.alias,
        name=kwargs.pop('alias_name'),
        ipaddress=kwargs.pop('cidr'),
        arpcheck=not kwargs.pop('no_arpcheck'),
        restart=not kwargs.pop('no_restart'),
        **kwargs,
    )


@network.command()
@click.argument('interface')
@click.option(
    '--route',
    'routes',
    nargs=2,
    multiple=True,
    required=True,
    metavar='<network CIDR> <gateway>',
    help='A static route; may be repeated.'
)
@_restart_option
@click.pass_context
def route(ctx: click.Context, **kwargs) -> None:
    """
    Configures static routes for an interface.

    \b
    INTERFACE the routes leave through.
    \f
    """
    LOG.info('Calling network route with: %s', kwargs)
    _run(
        ctx,
        config.route,
        name=kwargs.pop('interface'),
        restart=not kwargs.pop('no_restart'),
        **kwargs,
    )


@netforge.command()
@click.argument('manifest', type=click.Path(dir_okay=False))
@click.pass_context
def apply(ctx: click.Context, manifest: str) -> None:
    """
    Converges everything described in a YAML manifest.

    \b
    MANIFEST is a YAML file with global, interfaces, aliases and routes
    sections.
    \f
    """
    LOG.info('Calling apply with: %s', manifest)
    _run(ctx, config.apply, manifest_path=manifest)
