"""Timeouts, log markers and file names shared by the smoke harness.

All durations are in seconds.
"""

from __future__ import annotations

import re

# Android emulator
DEFAULT_ANDROID_PORT = 5554
EMULATOR_START_TIMEOUT = 120.0
EMULATOR_TERMINATE_TIMEOUT = 30.0
EMULATOR_SETTLE_DELAY = 60.0
PACKAGE_INSTALL_TIMEOUT = 600.0
PACKAGE_INIT_DELAY = 10.0
EXPO_PACKAGE_NAME = "host.exp.exponent"

# iOS simulator
SIMULATOR_START_TIMEOUT = 300.0
SIMULATOR_TERMINATE_TIMEOUT = 30.0
SIMULATOR_SETTLE_DELAY = 15.0
APP_INSTALL_AND_BUILD_TIMEOUT = 600.0
APP_INIT_DELAY = 40.0

# Appium
APPIUM_PORT = 4723
APPIUM_BASE_PATH = "/wd/hub"
APPIUM_START_TIMEOUT = 60.0
APPIUM_TERMINATE_TIMEOUT = 300.0
APPIUM_TERMINATE_INTERVAL = 10.0

# Polling defaults
DEFAULT_WAIT_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 1.0
LAUNCH_CONFIG_UPDATE_TIMEOUT = 30.0
EXPO_LAUNCH_TIMEOUT = 120.0
EXPO_LAUNCH_POLL_INTERVAL = 5.0

# Log markers
PACKAGER_STARTED_PATTERN = "Packager started"
EXPO_SUCCESS_PATTERN = "Tunnel ready"
EXPO_FAILURE_PATTERN = "XDLError"
EXPO_URL_PATTERN = re.compile(r"exp://\d+\.\d+\.\d+\.\d+:\d+", re.MULTILINE)

# Log files written by the extension under test
REACT_NATIVE_LOG_FILE = "ReactNative.txt"
REACT_NATIVE_RUN_EXPO_LOG_FILE = "ReactNativeRunexponent.txt"

# Harness configuration files
ENV_CONFIG_FILE = "config.json"
ENV_DEV_CONFIG_FILE = "config.dev.json"
