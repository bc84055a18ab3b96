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
Logging for netforge.
"""
import logging
import os
import tempfile

LOG_DIR = os.environ.get('NETFORGE_LOG_DIR', '/var/log/netforge')
LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'


def _log_file() -> str:
    """
    Resolves the log file, falling back to the temp directory when the
    configured directory can not be created or written to.
    """
    for directory in (LOG_DIR, tempfile.gettempdir()):
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError:
            continue
        if os.access(directory, os.W_OK):
            return os.path.join(directory, 'netforge.log')
    return os.path.join(tempfile.gettempdir(), 'netforge.log')


class Logger(logging.Logger):

    """
    A logger that writes to the netforge log file.
    """

    _handler = None

    def __init__(self, name: str, level: int = logging.DEBUG) -> None:
        """
        Initializes a logger.

        :param name: Name of the logger, usually ``__name__``.
        :param level: Minimum level to record.
        """
        super().__init__(name, level)
        self.addHandler(self.handler())

    @classmethod
    def handler(cls) -> logging.Handler:
        """
        Returns the file handler shared by every netforge logger.
        """
        if cls._handler is None:
            handler = logging.FileHandler(_log_file(), encoding='utf-8')
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            Logger._handler = handler
        return cls._handler
