"""
Core constants for blemgr.

D-Bus and BlueZ names used by the discovery and GATT layers, organized by
category.
"""

# D-Bus Core Constants
DBUS_PROPERTIES = "org.freedesktop.DBus.Properties"
DBUS_OM_IFACE = "org.freedesktop.DBus.ObjectManager"
DBUS_ROOT_PATH = "/"

# BlueZ Core Constants
BLUEZ_SERVICE_NAME = "org.bluez"

# BlueZ Interface Constants
ADAPTER_INTERFACE = BLUEZ_SERVICE_NAME + ".Adapter1"
DEVICE_INTERFACE = BLUEZ_SERVICE_NAME + ".Device1"

# GATT Interface Constants
GATT_SERVICE_INTERFACE = BLUEZ_SERVICE_NAME + ".GattService1"
GATT_CHARACTERISTIC_INTERFACE = BLUEZ_SERVICE_NAME + ".GattCharacteristic1"

# Object path segments used by BlueZ to name child objects
DEVICE_PATH_SEGMENT = "/dev_"
CHARACTERISTIC_PATH_SEGMENT = "/char"

# Match rule for every signal emitted by the BlueZ daemon
BLUEZ_SIGNAL_MATCH_RULE = f"type='signal',sender='{BLUEZ_SERVICE_NAME}'"

# D-Bus argument signatures for GATT method calls
SIGNATURE_OPTIONS = "a{sv}"
SIGNATURE_WRITE_VALUE = "aya{sv}"

# GattCharacteristic1 flag tokens
GATT__FLAG__READ = "read"
GATT__FLAG__WRITE = "write"
GATT__FLAG__WRITE_WITHOUT_RESPONSE = "write-without-response"
GATT__FLAG__NOTIFY = "notify"
GATT__FLAG__INDICATE = "indicate"
