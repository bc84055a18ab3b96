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
Settings for netforge.
"""
import os

from yaml import safe_load

from netforge.logger import Logger

LOG = Logger(__name__)

DEFAULT_SETTINGS_PATH = '/etc/netforge/netforge'


def settings() -> dict:
    """
    Opens the netforge settings file.

    ``/etc/netforge/netforge.yml`` (or ``.yaml``) is preferred, otherwise the
    packaged defaults are used. Keys missing from a site file are filled in
    from the packaged defaults.
    """
    packaged_path = os.path.join(os.path.dirname(__file__), 'netforge.yml')
    with open(packaged_path, 'r', encoding='utf-8') as packaged:
        merged = safe_load(packaged.read())
    for extension in ('yml', 'yaml'):
        site_path = f'{DEFAULT_SETTINGS_PATH}.{extension}'
        if os.path.exists(site_path):
            LOG.info('Using settings file: %s', site_path)
            with open(site_path, 'r', encoding='utf-8') as site:
                site_settings = safe_load(site.read()) or {}
            merged['paths'].update(site_settings.pop('paths', {}) or {})
            merged.update(site_settings)
            break
    else:
        LOG.info('Using settings file: %s', packaged_path)
    return merged


def target_path(root: str, path: str) -> str:
    """
    Resolves a path beneath a target root filesystem.

    :param root: The target root, ``/`` for the running system.
    :param path: An absolute path on the target.
    """
    return os.path.join(root or '/', path.lstrip('/'))
