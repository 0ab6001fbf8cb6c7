# Path: release_installer/engine/constants.py
"""
Engine Constants

Tool invocations, output markers and protocol constants used by the
installation engine.
"""

# ============================================================================
# HTTP HEADERS
# ============================================================================
HEADER_USER_AGENT: str = 'User-Agent'
HEADER_RANGE: str = 'Range'
HEADER_CONTENT_LENGTH: str = 'Content-Length'
HEADER_CONTENT_RANGE: str = 'Content-Range'
HEADER_ETAG: str = 'ETag'
HEADER_LAST_MODIFIED: str = 'Last-Modified'
DEFAULT_USER_AGENT: str = 'release-installer/0.1'
MAX_CONCURRENT_CONNECTIONS: int = 4

# ============================================================================
# ARCHIVE EXPANSION (xip)
# ============================================================================
XIP_PATH: str = '/usr/bin/xip'
XIP_EXPAND_FLAG: str = '--expand'
XIP_DAMAGED_MARKERS: tuple = (
    'damaged and can’t be expanded',
    "damaged and can't be expanded",
)
XIP_NO_SPACE_MARKERS: tuple = (
    'No space left on device',
    'not enough free space',
)
EXPANSION_DIR_SUFFIX: str = '.expanding'

# ============================================================================
# SECURITY TOOLS
# ============================================================================
SPCTL_PATH: str = '/usr/sbin/spctl'
SPCTL_ASSESS_ARGS: tuple = ('--assess', '--verbose', '--type', 'execute')
CODESIGN_PATH: str = '/usr/bin/codesign'
CODESIGN_DISPLAY_ARGS: tuple = ('-vv', '-d')
CODESIGN_AUTHORITY_PREFIX: str = 'Authority='
CODESIGN_TEAM_PREFIX: str = 'TeamIdentifier='
CODESIGN_IDENTIFIER_PREFIX: str = 'Identifier='

# ============================================================================
# POST-INSTALL MARKER QUERIES
# ============================================================================
GETCONF_PATH: str = '/usr/bin/getconf'
GETCONF_USER_CACHE_DIR: str = 'DARWIN_USER_CACHE_DIR'
SW_VERS_PATH: str = '/usr/bin/sw_vers'
SW_VERS_BUILD_FLAG: str = '-buildVersion'

# ============================================================================
# PRIVILEGED HELPER COMMANDS (sudo-backed helper)
# ============================================================================
SUDO_PATH: str = '/usr/bin/sudo'
DEVTOOLS_SECURITY_PATH: str = '/usr/sbin/DevToolsSecurity'
DSEDITGROUP_PATH: str = '/usr/sbin/dseditgroup'
DEVELOPER_GROUP: str = '_developer'
STAFF_GROUP: str = 'staff'
XCODEBUILD_RELATIVE_PATH: str = 'Contents/Developer/usr/bin/xcodebuild'

# ============================================================================
# ARIA2
# ============================================================================
ARIA2_MAX_CONNECTIONS_PER_SERVER: int = 16
ARIA2_SPLIT: int = 16
ARIA2_SUMMARY_INTERVAL: int = 1

# https://github.com/aria2/aria2/blob/master/src/error_code.h
ARIA2_EXIT_CODES: dict = {
    1: 'Unknown error',
    2: 'Timed out',
    3: 'Resource not found',
    4: 'Maximum number of file not found errors reached',
    5: 'Download speed too slow',
    6: 'Network problem',
    7: 'Unfinished downloads in progress',
    8: 'Remote server did not support resume when resume was required to complete download',
    9: 'Not enough disk space available',
    10: 'Piece length was different from one in .aria2 control file',
    11: 'Duplicate download',
    12: 'Duplicate info hash torrent',
    13: 'File already exists',
    14: 'Renaming file failed',
    15: 'Could not open existing file',
    16: 'Could not create new file or truncate existing file',
    17: 'File I/O error',
    18: 'Could not create directory',
    19: 'Name resolution failed',
    20: 'Could not parse Metalink document',
    21: 'FTP command failed',
    22: 'HTTP response header was bad or unexpected',
    23: 'Too many redirects occurred',
    24: 'HTTP authorization failed',
    25: 'Could not parse bencoded file (usually ".torrent" file)',
    26: '".torrent" file was corrupted or missing information',
    27: 'Magnet URI was bad',
    28: 'Bad/unrecognized option was given or unexpected option argument was given',
    29: 'HTTP service unavailable',
    30: 'Could not parse JSON-RPC request',
    31: 'Reserved. Not used.',
    32: 'Checksum validation failed',
}

# Exit codes worth another attempt (timeouts, network, slow speed, 503)
ARIA2_RETRYABLE_EXIT_CODES: frozenset = frozenset({2, 5, 6, 19, 29})
