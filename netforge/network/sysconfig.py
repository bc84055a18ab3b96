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
Module for handling ``sysconfig`` based network managers.
"""
import difflib
import os

import click

from netforge.config import target_path
from netforge.network.manager import Interface
from netforge.network.manager import NetworkSettings
from netforge.network.manager import Routes
from netforge.network.manager import SystemNetwork
from netforge.logger import Logger

LOG = Logger(__name__)


class Sysconfig(SystemNetwork):

    """
    Main object for ``sysconfig`` derived network configuration, as read by
    the ``network-scripts`` subsystem.
    """

    name = 'sysconfig'

    def __str__(self):
        """
        Name of the network manager.
        """
        return self.name

    @property
    def install_location(self) -> str:
        """
        Where interface configurations are installed.
        """
        return target_path(
            self.root,
            self.paths.get('network_scripts', '/etc/sysconfig/network-scripts'),
        )

    @property
    def network_file(self) -> str:
        """
        Path to the host-wide network configuration.
        """
        return target_path(
            self.root,
            self.paths.get('sysconfig', '/etc/sysconfig/network'),
        )

    @property
    def hostname_file(self) -> str:
        """
        Path to the static hostname file.
        """
        return target_path(
            self.root,
            self.paths.get('hostname', '/etc/hostname'),
        )

    def config_path(self, config: str, name: str) -> str:
        """
        Path to an interface's configuration file.

        :param config: ``ifcfg`` or ``route``.
        :param name: Name of the interface.
        """
        return os.path.join(self.install_location, f'{config}-{name}')

    def _write(self, path: str, content: str) -> bool:
        """
        Writes content to a file unless the file already holds it.

        :param path: The file to write.
        :param content: The rendered content.
        :returns: Whether the file changed (or would change on a dry run).
        """
        current = None
        if os.path.exists(path):
            with open(path, 'r', encoding='utf-8') as existing:
                current = existing.read()
        if current == content:
            LOG.info('%s is up to date.', path)
            return False
        if self.dry_run:
            diff = difflib.unified_diff(
                (current or '').splitlines(keepends=True),
                content.splitlines(keepends=True),
                fromfile=path if current is not None else '/dev/null',
                tofile=path,
            )
            click.echo(''.join(diff), nl=False)
            LOG.info('Dry run; not writing %s', path)
            return True
        os.makedirs(os.path.dirname(path), exist_ok=True)
        LOG.info('Writing %s', path)
        with open(path, 'w', encoding='utf-8') as config_file:
            config_file.write(content)
        click.echo(f'Wrote {path}')
        return True

    def _remove(self, path: str) -> bool:
        """
        Removes a file.

        :param path: The file to remove.
        :returns: Whether a file was (or would be on a dry run) removed.
        """
        if not os.path.exists(path):
            LOG.info('%s not found, nothing to remove.', path)
            return False
        if self.dry_run:
            click.echo(f'Would remove {path}')
            return True
        os.unlink(path)
        click.echo(f'Removed {path}')
        return True

    def write_global(self, settings: NetworkSettings) -> bool:
        """
        Writes the host-wide network configuration, and the hostname file on
        releases that keep the hostname outside of ``sysconfig/network``.

        :param settings: The host-wide settings.
        """
        hostname_in_network = not self.os_release.has_systemd
        content = self._render_template(
            'network',
            settings=settings,
            hostname_in_network=hostname_in_network,
        )
        changed = self._write(self.network_file, content)
        if settings.hostname and not hostname_in_network:
            content = self._render_template('hostname', settings=settings)
            changed = self._write(self.hostname_file, content) or changed
        return changed

    def write_config(self, interface: Interface) -> bool:
        """
        Writes the ``ifcfg`` file of an interface, using the alias variant for
        alias interfaces.

        :param interface: The interface to configure.
        """
        template = 'ifcfg-alias' if interface.isalias else 'ifcfg-eth'
        content = self._render_template(template, interface=interface)
        return self._write(self.config_path('ifcfg', interface.name), content)

    def write_routes(self, routes: Routes) -> bool:
        """
        Writes the ``route`` file of an interface.

        :param routes: The static routes to configure.
        """
        content = self._render_template('route', routes=routes)
        return self._write(self.config_path('route', routes.name), content)

    def remove_config(self, name: str) -> bool:
        """
        Removes a network interface configuration.

        :param name: Name of the interface.
        """
        removed = False
        for config in ['ifcfg', 'route']:
            removed = self._remove(self.config_path(config, name)) or removed
        return removed
