"""
Global constants for the wifi-picker engine.

NetworkManager D-Bus names, the numeric codes the engine reacts to, and the
default animation/icon settings used when no configuration overrides them.
"""

# NetworkManager D-Bus API
NM_BUS_NAME = "org.freedesktop.NetworkManager"
NM_OBJECT_PATH = "/org/freedesktop/NetworkManager"
NM_SETTINGS_PATH = "/org/freedesktop/NetworkManager/Settings"

NM_INTERFACE = "org.freedesktop.NetworkManager"
NM_DEVICE_INTERFACE = "org.freedesktop.NetworkManager.Device"
NM_WIRELESS_INTERFACE = "org.freedesktop.NetworkManager.Device.Wireless"
NM_ACCESS_POINT_INTERFACE = "org.freedesktop.NetworkManager.AccessPoint"
NM_ACTIVE_CONNECTION_INTERFACE = "org.freedesktop.NetworkManager.Connection.Active"
NM_SETTINGS_INTERFACE = "org.freedesktop.NetworkManager.Settings"
NM_SETTINGS_CONNECTION_INTERFACE = "org.freedesktop.NetworkManager.Settings.Connection"
DBUS_PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"

NO_OBJECT_PATH = "/"  # NetworkManager's "none" object path

# NMDeviceType
DEVICE_TYPE_WIFI = 2

# NM80211ApFlags / NM80211ApSecurityFlags
AP_FLAG_PRIVACY = 0x1
AP_SEC_KEY_MGMT_802_1X = 0x200  # enterprise auth, not supported

# NMDeviceState values reported by Device.StateChanged
DEVICE_STATE_ACTIVATED = 100
DEVICE_STATE_FAILED = 120

# NMDeviceStateReason values
DEVICE_REASON_NONE = 0
DEVICE_REASON_UNKNOWN = 1
DEVICE_REASON_NO_SECRETS = 7

# Connection profile settings
WIRELESS_CONNECTION_TYPE = "802-11-wireless"
WIRELESS_SECURITY_SECTION = "802-11-wireless-security"
UUID_PREFIX = "12345678"  # marks profiles created by this engine

# Signal queue depth for D-Bus subscriptions (jeepney drops messages once full)
SIGNAL_QUEUE_SIZE = 64

# Orchestration defaults
RESCAN_INTERVAL = 10.0  # seconds
SCAN_TIMEOUT = 30.0  # seconds, None = wait forever
CONNECT_TIMEOUT = 60.0  # seconds, None = wait forever
MIN_FPS = 1
MAX_FPS = 60

# Display defaults
DISPLAY_NAME = "wifi"
SCAN_FPS = 10
SCAN_FRAMES = ["⠻", "⠽", "⠾", "⠷", "⠯", "⠟"]
CONNECTING_FPS = 4
CONNECTING_FRAMES = ["connecting .", "connecting ..", "connecting ..."]
CONNECTED_LABEL = "(connected)"
STATUS_MARKUP = "<span size='small' foreground='#639ec5ff' alpha='80%'>{text}</span>"

# Strongest to weakest: >=70, 50-69, 30-49, 10-29, below 10
ICONS_OPEN = ["󰤨", "󰤥", "󰤢", "󰤟", "󰤯"]
ICONS_PSK = ["󰤪", "󰤧", "󰤤", "󰤡", "󰤬"]
SIGNAL_BUCKETS = [70, 50, 30, 10]

PROMPT_PASSWORD = "password"
PROMPT_BAD_AUTH = "bad auth"
PROMPT_FAIL = "fail"
