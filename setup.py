from setuptools import setup, find_packages

# Check if PyGObject (gi) is already available system-wide
# This prevents pip from trying to build PyGObject from source when it's
# already installed via system package manager (apt, pacman, etc.)
_HAS_PYGOBJECT = False
try:
    import gi
    gi.require_version('GLib', '2.0')
    from gi.repository import GLib
    _HAS_PYGOBJECT = True
except (ImportError, ValueError, AttributeError):
    _HAS_PYGOBJECT = False

# Base requirements - always needed
install_requires = [
    "dbus-python>=1.2.0",
    "PyYAML>=6.0",
]

# PyGObject drives the GLib main loop used for signal delivery and the bus pump
# If not system-installed, add it to install_requires
# If system-installed, add it to extras_require for users who want to manage via pip
if not _HAS_PYGOBJECT:
    install_requires.append("PyGObject>=3.48.0")
    _extras = {
        "monitor": [],  # No-op since it's already in install_requires
    }
else:
    _extras = {
        "monitor": ["PyGObject>=3.48.0"],  # Optional for pip users
    }

_extras["test"] = ["pytest>=8.0.0"]

setup(
    name="blemgr",
    version="1.0.0",
    description="BlueZ LE device discovery and GATT interaction over D-Bus",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=install_requires,
    extras_require=_extras,
    entry_points={
        'console_scripts': [
            'blemgr=blemgr.cli:main',
        ],
    },
    python_requires='>=3.8',
)
