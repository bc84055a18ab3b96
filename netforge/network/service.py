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
Restarts the network service when managed files change.
"""
import click

from netforge.os import PlatformError
from netforge.os import OSRelease
from netforge.os import run_command
from netforge.logger import Logger

LOG = Logger(__name__)


class ServiceError(Exception):

    """
    An exception for service management problems.
    """

    def __init__(self, message) -> None:
        self.message = message
        super().__init__(self.message)


def service_name(os_release: OSRelease) -> str:
    """
    Resolves the name of the service that applies ``network-scripts``
    configuration.

    :param os_release: The target's identity.
    :raises PlatformError: When the target is not RedHat based.
    """
    if os_release.family != 'RedHat':
        raise PlatformError(
            f'{os_release.name or "This platform"} is not supported; only '
            f'RedHat based systems are.'
        )
    if os_release.major >= 8:
        return 'NetworkManager'
    return 'network'


class Notifier:

    """
    Collects restart requests from changed resources and acts on them once.
    """

    def __init__(self, os_release: OSRelease, defer: bool = False) -> None:
        """
        :param os_release: The target's identity.
        :param defer: Record requests but never act on them.
        """
        self.os_release = os_release
        self.defer = defer
        self.restart_requested = False
        self.flushes = []
        self.hostname = None

    def notify(self, changed: bool, restart: bool = True) -> None:
        """
        Registers a restart when a resource changed.

        :param changed: Whether the resource's files changed.
        :param restart: Whether the resource wants the service restarted.
        """
        if changed and restart:
            self.restart_requested = True

    def flush(self, device: str) -> None:
        """
        Registers an address flush for a device, run before the restart.

        :param device: The device to flush.
        """
        if device not in self.flushes:
            self.flushes.append(device)

    def set_hostname(self, hostname: str) -> None:
        """
        Registers a hostname to apply to the running system.

        :param hostname: The new hostname.
        """
        self.hostname = hostname

    def hostname_command(self) -> list:
        """
        The command that sets the running system's hostname.
        """
        if self.os_release.has_systemd:
            return ['hostnamectl', 'set-hostname', self.hostname]
        return ['hostname', self.hostname]

    def restart_command(self) -> list:
        """
        The command that restarts the network service.
        """
        name = service_name(self.os_release)
        if self.os_release.has_systemd:
            return ['systemctl', 'restart', name]
        return ['service', name, 'restart']

    def fire(self) -> bool:
        """
        Runs the registered flushes, sets the hostname and restarts.

        :raises ServiceError: When the service fails to restart.
        :returns: Whether the service was restarted.
        """
        if self.defer:
            if self.restart_requested or self.flushes or self.hostname:
                LOG.info('Deferred; not restarting the network service.')
                click.echo('Deferred; the network service was not restarted.')
            return False
        for device in self.flushes:
            result = run_command(['ip', 'addr', 'flush', 'dev', device])
            if result.return_code != 0:
                LOG.warning('Failed to flush %s: %s', device, result.stderr)
        self.flushes = []
        if self.hostname:
            result = run_command(self.hostname_command())
            if result.return_code != 0:
                LOG.warning(
                    'Failed to set the hostname to %s: %s',
                    self.hostname,
                    result.stderr,
                )
            self.hostname = None
        if not self.restart_requested:
            LOG.info('Nothing changed; not restarting the network service.')
            return False
        command = self.restart_command()
        click.echo(f'Restarting {service_name(self.os_release)} ... ')
        result = run_command(command)
        self.restart_requested = False
        if result.return_code != 0:
            LOG.error('Failed to restart the network service.')
            LOG.warning(vars(result))
            raise ServiceError(
                f'Failed to restart the network service: {result.stderr}'
            )
        LOG.info('Restarted the network service.')
        return True
