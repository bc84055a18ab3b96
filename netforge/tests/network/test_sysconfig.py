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
Tests for the ``netforge.network.sysconfig`` module.
"""
# pylint: disable=attribute-defined-outside-init
import os

from netforge.config import settings
from netforge.network import manager
from netforge.network import sysconfig
from netforge.os import OSRelease

RHEL_6 = OSRelease('RedHat', 'centos', '6.10')
RHEL_7 = OSRelease('RedHat', 'rhel', '7.9')


class TestSysconfig:
    """
    Tests for the sysconfig network manager.
    """

    network_manager = None

    def make(self, root, os_release=RHEL_7, dry_run=False):
        """
        Creates a network manager rooted at ``root``.
        """
        options = settings()
        return sysconfig.Sysconfig(
            os_release,
            root=str(root),
            paths=options['paths'],
            banner=options['banner'],
            dry_run=dry_run,
        )

    def test_name(self, tmp_path) -> None:
        """
        Asserts sysconfig identifies as sysconfig.
        """
        network_manager = self.make(tmp_path)
        assert str(network_manager) == network_manager.name

    def test_paths(self, tmp_path) -> None:
        """
        Asserts files are placed beneath the target root.
        """
        network_manager = self.make(tmp_path)
        assert network_manager.config_path('ifcfg', 'eth0') == os.path.join(
            str(tmp_path), 'etc/sysconfig/network-scripts/ifcfg-eth0'
        )
        assert network_manager.network_file == os.path.join(
            str(tmp_path), 'etc/sysconfig/network'
        )

    def test_write_config_static(self, tmp_path) -> None:
        """
        Asserts a static ifcfg file is rendered with the derived values.
        """
        network_manager = self.make(tmp_path)
        interface = manager.Interface(
            name='eth0',
            ipaddress='10.0.0.5/24',
            gateway='10.0.0.1',
            macaddress='aa:bb:cc:dd:ee:ff',
            peerdns=True,
            dns2='10.0.0.53',
        )
        assert network_manager.write_config(interface)
        path = network_manager.config_path('ifcfg', 'eth0')
        with open(path, 'r', encoding='utf-8') as ifcfg:
            assert ifcfg.read() == '''###
### File managed by netforge
###
DEVICE=eth0
BOOTPROTO=none
HWADDR=AA:BB:CC:DD:EE:FF
ONBOOT=yes
HOTPLUG=yes
TYPE=Ethernet
IPADDR=10.0.0.5
NETMASK=255.255.255.0
GATEWAY=10.0.0.1
PEERDNS=yes
DNS1=10.0.0.53
USERCTL=no
NM_CONTROLLED=no
'''

    def test_write_config_dhcp(self, tmp_path) -> None:
        """
        Asserts a DHCP ifcfg file is rendered without address details.
        """
        network_manager = self.make(tmp_path)
        interface = manager.Interface(
            name='mgmt0',
            ensure='down',
            dns1='8.8.8.8',
            mtu=9000,
            ipv6address='2001:db8::5/64',
            check_link_down=True,
        )
        network_manager.write_config(interface)
        path = network_manager.config_path('ifcfg', 'mgmt0')
        with open(path, 'r', encoding='utf-8') as ifcfg:
            content = ifcfg.read()
        assert 'BOOTPROTO=dhcp\n' in content
        assert 'ONBOOT=no\n' in content
        assert 'IPADDR' not in content
        assert 'MTU=9000\n' in content
        assert 'PEERDNS=no\n' in content
        assert 'DNS1' not in content
        assert 'IPV6INIT=yes\nIPV6ADDR=2001:db8::5/64\n' in content
        assert content.endswith('check_link_down() {\n    return 1;\n}\n')

    def test_write_config_bond(self, tmp_path) -> None:
        """
        Asserts a bond carries its type and bonding options.
        """
        network_manager = self.make(tmp_path)
        interface = manager.Interface(
            name='bond0',
            ipaddress='192.168.1.2/24',
            bonding_opts='mode=802.3ad miimon=100',
        )
        network_manager.write_config(interface)
        path = network_manager.config_path('ifcfg', 'bond0')
        with open(path, 'r', encoding='utf-8') as ifcfg:
            content = ifcfg.read()
        assert 'TYPE=Bond\n' in content
        assert 'BONDING_OPTS="mode=802.3ad miimon=100"\n' in content

    def test_write_config_alias(self, tmp_path) -> None:
        """
        Asserts aliases use the alias variant.
        """
        network_manager = self.make(tmp_path)
        interface = manager.Interface(
            isalias=True,
            name='eth0:1',
            ipaddress='10.0.0.6',
            netmask='255.255.255.0',
            noaliasrouting=True,
            arpcheck=False,
        )
        network_manager.write_config(interface)
        path = network_manager.config_path('ifcfg', 'eth0:1')
        with open(path, 'r', encoding='utf-8') as ifcfg:
            assert ifcfg.read() == '''###
### File managed by netforge
###
DEVICE=eth0:1
BOOTPROTO=none
ONPARENT=yes
TYPE=Ethernet
IPADDR=10.0.0.6
NETMASK=255.255.255.0
NO_ALIASROUTING=yes
ARPCHECK=no
NM_CONTROLLED=no
'''

    def test_write_config_zero_values(self, tmp_path) -> None:
        """
        Asserts a metric or link delay of 0 is still rendered.
        """
        network_manager = self.make(tmp_path)
        interface = manager.Interface(
            name='eth0',
            ipaddress='10.0.0.5/24',
            metric=0,
            linkdelay=0,
        )
        network_manager.write_config(interface)
        with open(network_manager.config_path('ifcfg', 'eth0'), 'r',
                  encoding='utf-8') as ifcfg:
            content = ifcfg.read()
        assert 'METRIC=0\n' in content
        assert 'LINKDELAY=0\n' in content
        alias = manager.Interface(
            isalias=True,
            name='eth0:1',
            ipaddress='10.0.0.6/24',
            metric=0,
        )
        network_manager.write_config(alias)
        with open(network_manager.config_path('ifcfg', 'eth0:1'), 'r',
                  encoding='utf-8') as ifcfg:
            assert 'METRIC=0\n' in ifcfg.read()

    def test_write_config_idempotent(self, tmp_path) -> None:
        """
        Asserts unchanged content is not rewritten.
        """
        network_manager = self.make(tmp_path)
        interface = manager.Interface(name='eth0', ipaddress='10.0.0.5/24')
        assert network_manager.write_config(interface)
        assert not network_manager.write_config(interface)
        interface.mtu = 1500
        assert network_manager.write_config(interface)

    def test_dry_run(self, tmp_path, capsys) -> None:
        """
        Asserts a dry run shows a diff and writes nothing.
        """
        network_manager = self.make(tmp_path, dry_run=True)
        interface = manager.Interface(name='eth0', ipaddress='10.0.0.5/24')
        assert network_manager.write_config(interface)
        assert not os.path.exists(network_manager.config_path('ifcfg', 'eth0'))
        assert '+IPADDR=10.0.0.5' in capsys.readouterr().out

    def test_write_global_systemd(self, tmp_path) -> None:
        """
        Asserts systemd releases get the hostname in ``/etc/hostname``.
        """
        network_manager = self.make(tmp_path)
        network_settings = manager.NetworkSettings(
            hostname='host1.example.com',
            gateway='10.0.0.1',
            nozeroconf=True,
        )
        assert network_manager.write_global(network_settings)
        with open(network_manager.network_file, 'r', encoding='utf-8') as net:
            assert net.read() == '''###
### File managed by netforge
###
NETWORKING=yes
NETWORKING_IPV6=no
GATEWAY=10.0.0.1
NOZEROCONF=yes
'''
        with open(network_manager.hostname_file, 'r', encoding='utf-8') as host:
            assert host.read() == 'host1.example.com\n'
        assert not network_manager.write_global(network_settings)

    def test_write_global_legacy(self, tmp_path) -> None:
        """
        Asserts older releases keep the hostname in ``sysconfig/network``.
        """
        network_manager = self.make(tmp_path, os_release=RHEL_6)
        network_settings = manager.NetworkSettings(
            hostname='host1.example.com',
            gatewaydev='eth0',
            nisdomain='example',
            vlan=True,
            ipv6networking=True,
        )
        network_manager.write_global(network_settings)
        with open(network_manager.network_file, 'r', encoding='utf-8') as net:
            assert net.read() == '''###
### File managed by netforge
###
NETWORKING=yes
NETWORKING_IPV6=yes
HOSTNAME=host1.example.com
GATEWAYDEV=eth0
NISDOMAIN=example
VLAN=yes
'''
        assert not os.path.exists(network_manager.hostname_file)

    def test_write_routes(self, tmp_path) -> None:
        """
        Asserts routes are numbered from zero.
        """
        network_manager = self.make(tmp_path)
        routes = manager.Routes(
            'eth0',
            ['192.168.2.0', '192.168.3.0'],
            ['255.255.255.0', '255.255.255.0'],
            ['10.0.0.254', '10.0.0.253'],
        )
        network_manager.write_routes(routes)
        path = network_manager.config_path('route', 'eth0')
        with open(path, 'r', encoding='utf-8') as route:
            assert route.read() == '''###
### File managed by netforge
###
ADDRESS0=192.168.2.0
NETMASK0=255.255.255.0
GATEWAY0=10.0.0.254
ADDRESS1=192.168.3.0
NETMASK1=255.255.255.0
GATEWAY1=10.0.0.253
'''

    def test_remove_config(self, tmp_path) -> None:
        """
        Asserts the ifcfg and route files are removed, and that removing
        twice changes nothing.
        """
        network_manager = self.make(tmp_path)
        network_manager.write_config(
            manager.Interface(name='em1', ipaddress='10.0.0.5/24')
        )
        network_manager.write_routes(
            manager.Routes('em1', ['10.1.0.0'], ['255.255.0.0'], ['10.0.0.1'])
        )
        assert network_manager.remove_config('em1')
        assert not os.path.exists(network_manager.config_path('ifcfg', 'em1'))
        assert not os.path.exists(network_manager.config_path('route', 'em1'))
        assert not network_manager.remove_config('em1')
