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
Tests for the ``netforge.network.manager`` module.
"""
import pytest

from netforge.network import manager


class TestInterface:
    """
    Tests for interface parameters and their derived values.
    """

    def test_onboot(self) -> None:
        """
        Asserts ``onboot`` follows ``ensure``.
        """
        assert manager.Interface(name='eth0', ensure='up').onboot == 'yes'
        assert manager.Interface(name='eth0', ensure='down').onboot == 'no'

    def test_onparent(self) -> None:
        """
        Asserts aliases derive ``onparent`` from ``ensure``.
        """
        alias = manager.Interface(
            isalias=True,
            name='eth0:1',
            ensure='down',
            ipaddress='10.0.0.6/24',
        )
        assert alias.onparent == 'no'
        assert alias.device == 'eth0'
        assert alias.is_alias()

    def test_invalid_ensure(self) -> None:
        """
        Asserts only ``up`` and ``down`` are accepted.
        """
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='eth0', ensure='absent')

    def test_dns2_promoted(self) -> None:
        """
        Asserts ``dns2`` becomes ``dns1`` when ``dns1`` is not given.
        """
        interface = manager.Interface(name='eth0', dns2='8.8.4.4')
        assert interface.dns1 == '8.8.4.4'
        assert interface.dns2 is None

    def test_dns_both(self) -> None:
        """
        Asserts both DNS servers are kept when both are given.
        """
        interface = manager.Interface(
            name='eth0', dns1='8.8.8.8', dns2='8.8.4.4'
        )
        assert interface.dns1 == '8.8.8.8'
        assert interface.dns2 == '8.8.4.4'

    def test_cidr(self) -> None:
        """
        Asserts CIDR notation yields an address and a netmask.
        """
        interface = manager.Interface(name='eth0', ipaddress='10.1.2.3/22')
        assert interface.ipaddress == '10.1.2.3'
        assert interface.netmask == '255.255.252.0'
        assert interface.bootproto == 'none'

    def test_netmask(self) -> None:
        """
        Asserts an address and an explicit netmask are accepted.
        """
        interface = manager.Interface(
            name='eth0', ipaddress='10.1.2.3', netmask='255.255.255.0'
        )
        assert interface.ipaddress == '10.1.2.3'
        assert interface.netmask == '255.255.255.0'

    @pytest.mark.parametrize('ipaddress,netmask', [
        ('10.1.2.3', None),
        ('10.1.2.300/24', None),
        ('10.1.2.3', '255.0.255.0'),
        ('2001:db8::1/64', None),
        (None, '255.255.255.0'),
    ])
    def test_invalid_address(self, ipaddress, netmask) -> None:
        """
        Asserts invalid addresses and netmasks are rejected.
        """
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='eth0', ipaddress=ipaddress, netmask=netmask)

    def test_invalid_gateway(self) -> None:
        """
        Asserts an invalid gateway is rejected.
        """
        with pytest.raises(manager.InterfaceError):
            manager.Interface(
                name='eth0', ipaddress='10.0.0.5/24', gateway='10.0.0'
            )

    def test_bootproto_default(self) -> None:
        """
        Asserts interfaces without an address default to DHCP.
        """
        assert manager.Interface(name='eth0').bootproto == 'dhcp'
        assert manager.Interface(
            name='eth0', bootproto='bootp'
        ).bootproto == 'bootp'
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='eth0', bootproto='magic')

    def test_macaddress(self) -> None:
        """
        Asserts MAC addresses are normalized to uppercase colon notation, and
        only rendered when ``manage_hwaddr`` is set.
        """
        interface = manager.Interface(
            name='eth0', macaddress='a4-bf-01-38-f1-40'
        )
        assert interface.macaddress == 'A4:BF:01:38:F1:40'
        assert interface.hwaddr == 'A4:BF:01:38:F1:40'
        interface = manager.Interface(
            name='eth0', macaddress='a4:bf:01:38:f1:40', manage_hwaddr=False
        )
        assert interface.hwaddr is None
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='eth0', macaddress='not-a-mac')

    def test_mtu(self) -> None:
        """
        Asserts the MTU is bounded.
        """
        assert manager.Interface(name='eth0', mtu='9000').mtu == 9000
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='eth0', mtu=20)
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='eth0', mtu=70000)

    def test_kind(self) -> None:
        """
        Asserts the interface type follows its name.
        """
        assert manager.Interface(name='bond0').kind == 'Bond'
        assert manager.Interface(name='virbr0').kind == 'Bridge'
        assert manager.Interface(name='em1').kind == 'Ethernet'

    def test_names(self) -> None:
        """
        Asserts illegal interface and alias names are rejected.
        """
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='eth0:1')
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='a-name-that-is-too-long')
        with pytest.raises(manager.InterfaceError):
            manager.Interface(isalias=True, name='eth0')

    def test_ipv6(self) -> None:
        """
        Asserts an IPv6 address implies ``ipv6init``.
        """
        interface = manager.Interface(
            name='eth0',
            ipv6address='2001:db8::5/64',
            ipv6gateway='2001:db8::1',
            ipv6secondaries='2001:db8::6/64, 2001:db8::7/64',
        )
        assert interface.ipv6init
        assert interface.ipv6address == '2001:db8::5/64'
        assert interface.ipv6gateway == '2001:db8::1'
        assert interface.ipv6secondaries == [
            '2001:db8::6/64',
            '2001:db8::7/64',
        ]
        assert not manager.Interface(name='eth0').ipv6init
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='eth0', ipv6address='10.0.0.1')

    def test_flags(self) -> None:
        """
        Asserts flags may be given as ``yes``/``no`` strings.
        """
        interface = manager.Interface(
            name='eth0', userctl='yes', peerdns='no', defroute=True
        )
        assert interface.userctl
        assert not interface.peerdns
        assert interface.defroute == 'yes'
        with pytest.raises(manager.InterfaceError):
            manager.Interface(name='eth0', userctl='maybe')


class TestRoutes:
    """
    Tests for static routes.
    """

    def test_routes(self) -> None:
        """
        Asserts parallel lists become routes.
        """
        routes = manager.Routes(
            'eth0',
            ['192.168.2.0', '192.168.3.0'],
            ['255.255.255.0', '255.255.254.0'],
            ['10.0.0.254', '10.0.0.253'],
        )
        assert routes.routes[1] == {
            'address': '192.168.3.0',
            'netmask': '255.255.254.0',
            'gateway': '10.0.0.253',
        }

    def test_mismatched(self) -> None:
        """
        Asserts lists of differing length are rejected.
        """
        with pytest.raises(manager.InterfaceError):
            manager.Routes(
                'eth0',
                ['192.168.2.0', '192.168.3.0'],
                ['255.255.255.0'],
                ['10.0.0.254'],
            )
        with pytest.raises(manager.InterfaceError):
            manager.Routes('eth0')

    def test_single_route(self) -> None:
        """
        Asserts a single route may be given without lists.
        """
        routes = manager.Routes(
            'eth0',
            ipaddress='192.168.2.0',
            netmask='255.255.255.0',
            gateway='10.0.0.254',
        )
        assert routes.routes == [{
            'address': '192.168.2.0',
            'netmask': '255.255.255.0',
            'gateway': '10.0.0.254',
        }]

    def test_from_cidrs(self) -> None:
        """
        Asserts routes can be given as network/gateway pairs.
        """
        routes = manager.Routes.from_cidrs(
            name='eth0',
            routes=[('192.168.2.17/24', '10.0.0.254')],
        )
        assert routes.routes == [{
            'address': '192.168.2.0',
            'netmask': '255.255.255.0',
            'gateway': '10.0.0.254',
        }]


class TestNetworkSettings:
    """
    Tests for host-wide settings.
    """

    def test_defaults(self) -> None:
        """
        Asserts optional settings are unset by default.
        """
        settings = manager.NetworkSettings()
        assert settings.hostname is None
        assert settings.gateway is None
        assert not settings.ipv6networking
        assert settings.restart

    def test_hostname(self) -> None:
        """
        Asserts invalid hostnames are rejected.
        """
        assert manager.NetworkSettings(
            hostname='ncn-m001.example.com'
        ).hostname == 'ncn-m001.example.com'
        with pytest.raises(manager.InterfaceError):
            manager.NetworkSettings(hostname='bad_host!')

    def test_gateway(self) -> None:
        """
        Asserts the default gateway is validated.
        """
        with pytest.raises(manager.InterfaceError):
            manager.NetworkSettings(gateway='300.1.1.1')
