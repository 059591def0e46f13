"""Exception types raised by the snapshot engine."""


class SnapDriveError(Exception):
    """Base class for all SnapDrive errors."""


class DeviceError(SnapDriveError):
    """A simulator control command (tap, swipe, screenshot, ...) failed."""


class ImageDecodeError(SnapDriveError):
    """An image file could not be read or decoded."""


class ElementNotFoundError(SnapDriveError):
    """A UI element did not appear before the timeout or scroll limit."""


class ScenarioError(SnapDriveError):
    """A scenario file or step is malformed."""
