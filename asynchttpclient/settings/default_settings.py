"""This module contains the default values for all settings used by
asynchttpclient.

If you add a setting here, keep the settings in alphabetical order, except
that enabling flags come first in their group.
"""

CALLBACK_PROPAGATE_EXCEPTIONS = False

# added under the caller's headers, which win on conflicts
DEFAULT_REQUEST_HEADERS = {}

DOWNLOAD_FAIL_ON_DATALOSS = False

DOWNLOAD_TIMEOUT = 180  # 3mins

LOG_ENABLED = True
LOG_DATEFORMAT = "%Y-%m-%d %H:%M:%S"
LOG_ENCODING = "utf-8"
LOG_FILE = None
LOG_FILE_APPEND = True
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
LOG_LEVEL = "DEBUG"
LOG_SHORT_NAMES = False
