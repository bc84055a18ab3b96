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
Operating system facilities: running commands and reading host facts.
"""
import dataclasses
import os
import re
import shlex
import subprocess
import time

from netforge.config import target_path
from netforge.logger import Logger

LOG = Logger(__name__)

OS_RELEASE_FILES = ('/etc/os-release', '/usr/lib/os-release')
RELEASE_FILES = ('/etc/redhat-release', '/etc/system-release')
RELEASE_REGEX = re.compile(r'^(?P<name>.+?)\s+release\s+(?P<version>[\d.]+)')
RELEASE_NAMES = (
    ('red hat', 'rhel'),
    ('centos', 'centos'),
    ('scientific', 'scientific'),
    ('oracle', 'ol'),
    ('fedora', 'fedora'),
    ('amazon', 'amzn'),
    ('rocky', 'rocky'),
    ('almalinux', 'almalinux'),
)
REDHAT_IDS = (
    'rhel',
    'centos',
    'fedora',
    'rocky',
    'almalinux',
    'ol',
    'scientific',
    'amzn',
)


class PlatformError(Exception):

    """
    An exception for unsupported or undetectable platforms.
    """

    def __init__(self, message) -> None:
        self.message = message
        super().__init__(self.message)


class _CLI:
    """
    The result of a command.
    """

    stdout = ''
    stderr = ''
    return_code = None
    duration = None

    def __init__(self, args: list, in_shell: bool = False) -> None:
        """
        Runs the given command.

        :param args: The command and its arguments.
        :param in_shell: Whether to run the command through a shell.
        """
        command = [str(arg) for arg in args]
        if in_shell:
            command = ' '.join(shlex.quote(arg) for arg in command)
        start = time.monotonic()
        try:
            result = subprocess.run(
                command,
                shell=in_shell,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as error:
            self.stderr = str(error)
            self.return_code = 127
        else:
            self.stdout = result.stdout.strip()
            self.stderr = result.stderr.strip()
            self.return_code = result.returncode
        self.duration = time.monotonic() - start


def run_command(
        args: list,
        in_shell: bool = False,
        silence: bool = False,
) -> _CLI:
    """
    Runs a command and captures its output.

    :param args: The command and its arguments.
    :param in_shell: Whether to run the command through a shell.
    :param silence: Do not log the command's output.
    """
    LOG.info('Running: %s', ' '.join(str(arg) for arg in args))
    result = _CLI(args, in_shell=in_shell)
    if not silence:
        LOG.debug(vars(result))
    return result


@dataclasses.dataclass
class OSRelease:

    """
    The identity of an operating system.
    """

    family: str
    name: str
    version: str

    @property
    def major(self) -> int:
        """
        The major release number, 0 when the version is not numeric.
        """
        major = self.version.split('.', maxsplit=1)[0]
        return int(major) if major.isdigit() else 0

    @property
    def has_systemd(self) -> bool:
        """
        Whether this release manages services and the hostname with systemd.
        """
        return self.family == 'RedHat' and self.major >= 7

    @classmethod
    def from_fields(cls, fields: dict) -> 'OSRelease':
        """
        Builds an ``OSRelease`` from parsed ``os-release`` fields.

        :param fields: Parsed ``os-release`` key/value pairs.
        """
        os_id = fields.get('ID', '').lower()
        like = fields.get('ID_LIKE', '').lower().split()
        if os_id in REDHAT_IDS or {'rhel', 'fedora', 'centos'} & set(like):
            family = 'RedHat'
        else:
            family = os_id.capitalize()
        return cls(
            family=family,
            name=os_id,
            version=fields.get('VERSION_ID', ''),
        )


def parse_os_release(text: str) -> dict:
    """
    Parses the content of an ``os-release`` file.

    :param text: Content of the file.
    """
    fields = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        fields[key.strip()] = value.strip().strip('"').strip("'")
    return fields


def parse_redhat_release(text: str) -> dict:
    """
    Parses the content of a ``redhat-release`` file into ``os-release``
    fields, e.g. ``CentOS release 6.10 (Final)``.

    :param text: Content of the file.
    """
    match = RELEASE_REGEX.match(text.strip())
    if not match:
        return {}
    name = match.group('name').lower()
    for prefix, os_id in RELEASE_NAMES:
        if name.startswith(prefix):
            break
    else:
        os_id = name.split()[0]
    return {'ID': os_id, 'VERSION_ID': match.group('version')}


def os_release(root: str = '/') -> OSRelease:
    """
    Reads the target operating system's identity, from ``os-release`` or, on
    releases that predate it, from ``redhat-release``.

    :param root: The target root filesystem.
    :raises PlatformError: When no release file can be read.
    """
    candidates = [target_path(root, path) for path in OS_RELEASE_FILES]
    for candidate in candidates:
        if os.path.isfile(candidate):
            LOG.info('Reading OS facts from %s', candidate)
            with open(candidate, 'r', encoding='utf-8') as release:
                return OSRelease.from_fields(parse_os_release(release.read()))
    legacy = [target_path(root, path) for path in RELEASE_FILES]
    for candidate in legacy:
        if os.path.isfile(candidate):
            LOG.info('Reading OS facts from %s', candidate)
            with open(candidate, 'r', encoding='utf-8') as release:
                fields = parse_redhat_release(release.read())
            if fields:
                return OSRelease.from_fields(fields)
            LOG.warning('Could not parse %s', candidate)
    raise PlatformError(
        f'Could not detect the operating system (tried: '
        f'{", ".join(candidates + legacy)})'
    )
