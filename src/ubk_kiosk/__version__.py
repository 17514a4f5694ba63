"""UBK Kiosk version information."""

__version__ = "0.9.2"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Version history:
# 0.9.0 - Session controller: rotation, inactivity home-return, lockout,
#         hidden-tab PIN gate, pause extensions
# 0.9.1 - Media-aware rotation (grace period after playback stops), keyboard
#         auto-close, power menu on the lock screen
# 0.9.2 - Overnight active-hours windows, pause button auto-hide, local command
#         API (POST /commands/{name}), boot and display-wake flag locks
