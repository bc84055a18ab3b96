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
Base object for network managers, their configuration, and an interface.
"""
# pylint: disable=duplicate-code,too-many-instance-attributes

import re
import os

import netaddr
import jinja2

from netforge.logger import Logger

LOG = Logger(__name__)

ENSURE_STATES = {
    'up': 'yes',
    'down': 'no',
}
BOOTPROTOS = ('none', 'static', 'dhcp', 'bootp')
DEVICE_REGEX = re.compile(r'^[^\s/:]{1,15}$')
ALIAS_REGEX = re.compile(r'^(?P<parent>[^\s/:]{1,15}):(?P<label>[^\s/:]+)$')
HOSTNAME_REGEX = re.compile(
    r'^(?=.{1,253}$)[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?'
    r'(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$'
)


class InterfaceError(Exception):

    """
    An exception for interface problems.
    """

    def __init__(self, message) -> None:
        self.message = message
        super().__init__(self.message)


def yes_no(value) -> str:
    """
    Renders a flag the way ``network-scripts`` expects it.

    :param value: A boolean, or an existing ``yes``/``no`` string.
    """
    return 'yes' if to_bool(value) else 'no'


def to_bool(value) -> bool:
    """
    Coerces a flag given as a boolean or as a ``yes``/``no``/``true``/
    ``false`` string.

    :param value: The flag to coerce.
    :raises InterfaceError: When the string is not a recognized flag.
    """
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('yes', 'true', 'on', '1'):
            return True
        if lowered in ('no', 'false', 'off', '0', ''):
            return False
        raise InterfaceError(f'Invalid flag value: {value}')
    return bool(value)


def _ipv4(value: str, field: str) -> netaddr.IPAddress:
    """
    Validates an IPv4 address.

    :param value: The address.
    :param field: Name of the parameter, for error messages.
    :raises InterfaceError: When the address is not IPv4.
    """
    try:
        address = netaddr.IPAddress(str(value))
    except (netaddr.AddrFormatError, ValueError) as error:
        raise InterfaceError(f'Invalid {field}: {value}') from error
    if address.version != 4:
        raise InterfaceError(f'Invalid {field}: {value} is not IPv4')
    return address


def _ipv6(value: str, field: str) -> netaddr.IPNetwork:
    """
    Validates an IPv6 address, with or without a prefix length.

    :param value: The address.
    :param field: Name of the parameter, for error messages.
    :raises InterfaceError: When the address is not IPv6.
    """
    try:
        network = netaddr.IPNetwork(str(value))
    except (netaddr.AddrFormatError, ValueError) as error:
        raise InterfaceError(f'Invalid {field}: {value}') from error
    if network.version != 6:
        raise InterfaceError(f'Invalid {field}: {value} is not IPv6')
    return network


def _optional(value):
    """
    Treats empty strings as unset.
    """
    if value is None or value == '':
        return None
    return value


def _as_list(value) -> list:
    """
    Wraps a single value in a list.
    """
    if value is None or value == '':
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class IPAddr:
    """
    Object for IP information.
    """
    _ipaddr = None
    _gateway = None

    def __init__(
            self,
            name: str = '',
            ipaddress: str = None,
            netmask: str = None,
            **kwargs,
    ) -> None:
        """
        Initializes the IP information of an interface.

        :param name: Name of the interface to be worked on.
        :param ipaddress: An IPv4 address, optionally in CIDR notation.
        :param netmask: A dotted netmask, required unless ``ipaddress`` is
            given in CIDR notation.
        :keyword gateway: The gateway IP.
        """
        self.name = name
        self.set_ipaddr(_optional(ipaddress), _optional(netmask))
        self.gateway = kwargs.get('gateway')

    @property
    def ipaddr(self) -> netaddr.IPNetwork:
        """
        The IPv4 address and its prefix.
        """
        return self._ipaddr

    def set_ipaddr(self, ipaddress: str = None, netmask: str = None) -> None:
        """
        Sets an IP address from CIDR notation or an address and a netmask.

        :param ipaddress: The address.
        :param netmask: The netmask, ignored when ``ipaddress`` has a prefix.
        :raises InterfaceError: When the address or netmask is invalid.
        """
        if ipaddress is None:
            if netmask is not None:
                raise InterfaceError('A netmask was given without an address.')
            self._ipaddr = None
            return
        ipaddress = str(ipaddress)
        if '/' not in ipaddress:
            if netmask is None:
                raise InterfaceError(
                    f'No netmask given for {ipaddress}; use CIDR notation '
                    f'(A.B.C.D/E) or give a netmask.'
                )
            mask = _ipv4(netmask, 'netmask')
            if not mask.is_netmask():
                raise InterfaceError(f'Invalid netmask: {netmask}')
            ipaddress = f'{ipaddress}/{netmask}'
        try:
            network = netaddr.IPNetwork(ipaddress)
        except (netaddr.AddrFormatError, ValueError) as error:
            raise InterfaceError(f'Invalid ipaddress: {ipaddress}') from error
        if network.version != 4:
            raise InterfaceError(f'Invalid ipaddress: {ipaddress} is not IPv4')
        self._ipaddr = network

    @property
    def ipaddress(self) -> str:
        """
        The address without its prefix.
        """
        if self._ipaddr is None:
            return None
        return str(self._ipaddr.ip)

    @property
    def netmask(self) -> str:
        """
        The dotted netmask of the address.
        """
        if self._ipaddr is None:
            return None
        return str(self._ipaddr.netmask)

    @property
    def gateway(self) -> str:
        """
        The gateway IP.
        """
        return self._gateway

    @gateway.setter
    def gateway(self, new_gateway: str) -> None:
        """
        Sets the gateway, if valid.

        :param new_gateway: The new gateway IP.
        """
        new_gateway = _optional(new_gateway)
        if new_gateway is None:
            self._gateway = None
            return
        self._gateway = str(_ipv4(new_gateway, 'gateway'))

    def is_alias(self) -> bool:
        """
        Whether this is an alias or not.
        """
        if ALIAS_REGEX.match(self.name):
            return True
        return False

    def is_bridge(self) -> bool:
        """
        Whether this is a bridge or not.
        """
        if re.search(r'br\d+$', self.name):
            return True
        return False

    def is_bond(self) -> bool:
        """
        Whether this is a bond or not.
        """
        if re.match(r'^bond', self.name):
            return True
        return False


class Interface(IPAddr):

    """
    Object for a system network interface.
    """

    _ensure = 'up'
    _macaddress = None
    _mtu = None
    _bootproto = None

    def __init__(self, isalias: bool = False, **kwargs) -> None:
        """
        :param isalias: Whether this interface is an alias.
        :raises InterfaceError: When the interface is illegal.
        """
        name = kwargs.get('name', '')
        self.isalias = isalias
        if isalias:
            if not ALIAS_REGEX.match(name):
                raise InterfaceError(
                    f'Invalid alias name [{name}]; expected <parent>:<label>.'
                )
        elif not DEVICE_REGEX.match(name):
            raise InterfaceError(f'Invalid interface name [{name}].')
        super().__init__(**kwargs)
        self.ensure = kwargs.get('ensure', 'up')
        self.manage_hwaddr = to_bool(kwargs.get('manage_hwaddr', True))
        self.macaddress = kwargs.get('macaddress')
        self.bootproto = kwargs.get('bootproto')
        self.mtu = kwargs.get('mtu')
        self.userctl = to_bool(kwargs.get('userctl', False))
        self.peerdns = to_bool(kwargs.get('peerdns', False))
        self.set_dns(kwargs.get('dns1'), kwargs.get('dns2'))
        self.domain = _optional(kwargs.get('domain'))
        self.dhcp_hostname = _optional(kwargs.get('dhcp_hostname'))
        self.ethtool_opts = _optional(kwargs.get('ethtool_opts'))
        self.bonding_opts = _optional(kwargs.get('bonding_opts'))
        self.bridge = _optional(kwargs.get('bridge'))
        self.linkdelay = _optional(kwargs.get('linkdelay'))
        self.scope = _optional(kwargs.get('scope'))
        self.check_link_down = to_bool(kwargs.get('check_link_down', False))
        self.defroute = _optional(kwargs.get('defroute'))
        if self.defroute is not None:
            self.defroute = yes_no(self.defroute)
        self.zone = _optional(kwargs.get('zone'))
        self.metric = _optional(kwargs.get('metric'))
        self.nm_controlled = to_bool(kwargs.get('nm_controlled', False))
        self.noaliasrouting = to_bool(kwargs.get('noaliasrouting', False))
        self.arpcheck = to_bool(kwargs.get('arpcheck', True))
        self.set_ipv6(**kwargs)
        self.restart = to_bool(kwargs.get('restart', True))
        self.flush = to_bool(kwargs.get('flush', False))

    @property
    def device(self) -> str:
        """
        The parent device of an alias, otherwise the interface itself.
        """
        match = ALIAS_REGEX.match(self.name)
        if match:
            return match.group('parent')
        return self.name

    @property
    def ensure(self) -> str:
        """
        Whether the interface should be ``up`` or ``down``.
        """
        return self._ensure

    @ensure.setter
    def ensure(self, new_ensure: str) -> None:
        """
        Sets the desired interface state.

        :param new_ensure: ``up`` or ``down``.
        """
        if new_ensure not in ENSURE_STATES:
            raise InterfaceError(
                f'Invalid ensure [{new_ensure}]! Must be one of: '
                f'{", ".join(ENSURE_STATES)}.'
            )
        self._ensure = new_ensure

    @property
    def onboot(self) -> str:
        """
        Whether the interface starts at boot.
        """
        return ENSURE_STATES[self._ensure]

    @property
    def onparent(self) -> str:
        """
        Whether an alias starts with its parent.
        """
        return ENSURE_STATES[self._ensure]

    @property
    def macaddress(self) -> str:
        """
        The hardware address in uppercase, colon-delimited form.
        """
        return self._macaddress

    @macaddress.setter
    def macaddress(self, new_macaddress: str) -> None:
        """
        Sets the hardware address.

        :param new_macaddress: A MAC address in any common notation.
        """
        new_macaddress = _optional(new_macaddress)
        if new_macaddress is None:
            self._macaddress = None
            return
        try:
            mac = netaddr.EUI(str(new_macaddress).strip())
        except (netaddr.AddrFormatError, ValueError) as error:
            raise InterfaceError(
                f'Invalid macaddress: {new_macaddress}'
            ) from error
        mac.dialect = netaddr.mac_unix_expanded
        self._macaddress = str(mac).upper()

    @property
    def hwaddr(self) -> str:
        """
        The ``HWADDR`` to render, if any.
        """
        if self.manage_hwaddr:
            return self._macaddress
        return None

    @property
    def bootproto(self) -> str:
        """
        The boot protocol, ``none`` for static interfaces and ``dhcp``
        otherwise unless set.
        """
        if self._bootproto is not None:
            return self._bootproto
        if self.ipaddr is not None:
            return 'none'
        return 'dhcp'

    @bootproto.setter
    def bootproto(self, new_bootproto: str) -> None:
        """
        Sets the boot protocol.

        :param new_bootproto: One of ``none``, ``static``, ``dhcp``,
            ``bootp``.
        """
        new_bootproto = _optional(new_bootproto)
        if new_bootproto is not None and new_bootproto not in BOOTPROTOS:
            raise InterfaceError(
                f'Invalid bootproto [{new_bootproto}]! Must be one of: '
                f'{", ".join(BOOTPROTOS)}.'
            )
        self._bootproto = new_bootproto

    @property
    def mtu(self) -> int:
        """
        The MTU, if set.
        """
        return self._mtu

    @mtu.setter
    def mtu(self, new_mtu: int) -> None:
        """
        Sets a new MTU.

        :param new_mtu: New MTU to set.
        """
        new_mtu = _optional(new_mtu)
        if new_mtu is None:
            self._mtu = None
            return
        try:
            new_mtu = int(new_mtu)
        except ValueError as error:
            raise InterfaceError(f'Invalid MTU: {new_mtu}') from error
        if new_mtu < 68 or new_mtu > 65535:
            raise InterfaceError('Invalid MTU! Must be between 68 and 65535.')
        self._mtu = new_mtu

    @property
    def kind(self) -> str:
        """
        The ``TYPE`` of the interface.
        """
        if self.is_bond():
            return 'Bond'
        if self.is_bridge():
            return 'Bridge'
        return 'Ethernet'

    def set_dns(self, dns1: str = None, dns2: str = None) -> None:
        """
        Sets the DNS servers, promoting ``dns2`` when only it is given.

        :param dns1: Primary DNS server.
        :param dns2: Secondary DNS server.
        """
        dns1 = _optional(dns1)
        dns2 = _optional(dns2)
        if dns2 is not None and dns1 is None:
            LOG.info('Only dns2 was given for %s; using it as dns1.', self.name)
            dns1, dns2 = dns2, None
        self.dns1 = str(_ipv4(dns1, 'dns1')) if dns1 else None
        self.dns2 = str(_ipv4(dns2, 'dns2')) if dns2 else None

    def set_ipv6(self, **kwargs) -> None:
        """
        Sets the IPv6 parameters.

        :keyword ipv6address: Primary IPv6 address (CIDR notation allowed).
        :keyword ipv6init: Enable IPv6; implied by ``ipv6address``.
        :keyword ipv6gateway: IPv6 gateway.
        :keyword ipv6autoconf: Enable stateless autoconfiguration.
        :keyword ipv6peerdns: Accept DNS servers from IPv6 router adverts.
        :keyword ipv6secondaries: Additional IPv6 addresses.
        """
        ipv6address = _optional(kwargs.get('ipv6address'))
        self.ipv6address = None
        if ipv6address is not None:
            network = _ipv6(ipv6address, 'ipv6address')
            self.ipv6address = str(network) if '/' in str(ipv6address) \
                else str(network.ip)
        ipv6gateway = _optional(kwargs.get('ipv6gateway'))
        self.ipv6gateway = None
        if ipv6gateway is not None:
            self.ipv6gateway = str(_ipv6(ipv6gateway, 'ipv6gateway').ip)
        secondaries = kwargs.get('ipv6secondaries') or []
        if isinstance(secondaries, str):
            secondaries = secondaries.split(',')
        self.ipv6secondaries = [
            str(_ipv6(address.strip(), 'ipv6secondaries'))
            for address in secondaries if address.strip()
        ]
        self.ipv6init = to_bool(kwargs.get('ipv6init', False)) \
            or self.ipv6address is not None
        self.ipv6autoconf = _optional(kwargs.get('ipv6autoconf'))
        if self.ipv6autoconf is not None:
            self.ipv6autoconf = yes_no(self.ipv6autoconf)
        self.ipv6peerdns = to_bool(kwargs.get('ipv6peerdns', False))


class Routes:

    """
    Static routes for an interface.
    """

    def __init__(
            self,
            name: str,
            ipaddress: list = None,
            netmask: list = None,
            gateway: list = None,
            **kwargs,
    ) -> None:
        """
        :param name: The interface the routes leave through.
        :param ipaddress: Destination network addresses.
        :param netmask: Destination netmasks, one per address.
        :param gateway: Next hops, one per address.
        :raises InterfaceError: When the lists differ in length or hold
            invalid addresses.
        """
        if not DEVICE_REGEX.match(name or ''):
            raise InterfaceError(f'Invalid interface name [{name}].')
        self.name = name
        ipaddress = _as_list(ipaddress)
        netmask = _as_list(netmask)
        gateway = _as_list(gateway)
        if not ipaddress:
            raise InterfaceError(f'No routes given for [{name}].')
        if not len(ipaddress) == len(netmask) == len(gateway):
            raise InterfaceError(
                'ipaddress, netmask and gateway must have the same number '
                'of entries.'
            )
        self.routes = []
        for address, mask, hop in zip(ipaddress, netmask, gateway):
            mask = _ipv4(mask, 'netmask')
            if not mask.is_netmask():
                raise InterfaceError(f'Invalid netmask: {mask}')
            self.routes.append({
                'address': str(_ipv4(address, 'ipaddress')),
                'netmask': str(mask),
                'gateway': str(_ipv4(hop, 'gateway')),
            })
        self.restart = to_bool(kwargs.get('restart', True))

    @classmethod
    def from_cidrs(cls, name: str, routes: list, **kwargs) -> 'Routes':
        """
        Builds routes from ``(network, gateway)`` pairs, the network in CIDR
        notation.

        :param name: The interface the routes leave through.
        :param routes: ``(network, gateway)`` pairs.
        """
        ipaddress, netmask, gateway = [], [], []
        for network, hop in routes:
            try:
                network = netaddr.IPNetwork(str(network))
            except (netaddr.AddrFormatError, ValueError) as error:
                raise InterfaceError(f'Invalid route: {network}') from error
            ipaddress.append(str(network.network))
            netmask.append(str(network.netmask))
            gateway.append(hop)
        return cls(name, ipaddress, netmask, gateway, **kwargs)


class NetworkSettings:

    """
    Host-wide network settings.
    """

    def __init__(self, **kwargs) -> None:
        """
        :keyword hostname: The fully qualified hostname.
        :keyword gateway: The default gateway.
        :keyword gatewaydev: The default gateway device.
        :keyword ipv6gateway: The default IPv6 gateway.
        :keyword ipv6defaultdev: The default IPv6 gateway device.
        :keyword nisdomain: The NIS domain.
        :keyword vlan: Enable VLAN support.
        :keyword ipv6networking: Enable IPv6 networking.
        :keyword nozeroconf: Disable the zeroconf route.
        :keyword restart: Restart the network service on change.
        """
        self.hostname = _optional(kwargs.get('hostname'))
        if self.hostname is not None \
                and not HOSTNAME_REGEX.match(self.hostname):
            raise InterfaceError(f'Invalid hostname: {self.hostname}')
        gateway = _optional(kwargs.get('gateway'))
        self.gateway = str(_ipv4(gateway, 'gateway')) if gateway else None
        self.gatewaydev = _optional(kwargs.get('gatewaydev'))
        ipv6gateway = _optional(kwargs.get('ipv6gateway'))
        self.ipv6gateway = None
        if ipv6gateway is not None:
            self.ipv6gateway = str(_ipv6(ipv6gateway, 'ipv6gateway').ip)
        self.ipv6defaultdev = _optional(kwargs.get('ipv6defaultdev'))
        self.nisdomain = _optional(kwargs.get('nisdomain'))
        self.vlan = to_bool(kwargs.get('vlan', False))
        self.ipv6networking = to_bool(kwargs.get('ipv6networking', False))
        self.nozeroconf = to_bool(kwargs.get('nozeroconf', False))
        self.restart = to_bool(kwargs.get('restart', True))


class SystemNetwork:

    """
    Base class for a network manager object.
    """

    name = ''

    def __init__(
            self,
            os_release,
            root: str = '/',
            paths: dict = None,
            banner: str = '',
            dry_run: bool = False,
    ) -> None:
        """
        Initializes a network manager.

        :param os_release: The target's ``OSRelease``.
        :param root: The target root filesystem.
        :param paths: Install locations, relative to ``root``.
        :param banner: Text for the header of every rendered file.
        :param dry_run: Report changes without writing.
        """
        self.os_release = os_release
        self.root = root
        self.paths = paths or {}
        self.banner = banner
        self.dry_run = dry_run

    def _render_template(self, template_name: str, **context) -> str:
        """
        Renders a template file from ``templates/``
        """

        directory = os.path.dirname(__file__)
        template_directory = os.path.join(directory, 'templates', self.name)
        loader = jinja2.FileSystemLoader(template_directory)
        env = jinja2.Environment(
            loader=loader,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
        )
        env.filters['yes_no'] = yes_no
        template = env.get_template(f'{template_name}.j2')
        return template.render(banner=self.banner, **context)

    def remove_config(self, name: str) -> bool:
        """
        Removes an interface configuration.
        """
        raise NotImplementedError

    def write_config(self, interface: Interface) -> bool:
        """
        Writes an interface configuration to a file.
        """
        raise NotImplementedError

    def write_global(self, settings: NetworkSettings) -> bool:
        """
        Writes the host-wide network configuration.
        """
        raise NotImplementedError

    def write_routes(self, routes: Routes) -> bool:
        """
        Writes the static routes of an interface.
        """
        raise NotImplementedError
