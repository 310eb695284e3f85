# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Sync error taxonomy
"""


class SyncError(Exception):
    """Base class for every error raised by the sync pipeline"""
    pass


class FetchFailure(SyncError):
    """The feed could not be downloaded (network error, non-2xx, empty body)"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedFeed(SyncError):
    """The feed document as a whole could not be parsed"""
    pass


class ItemParseError(SyncError):
    """A single calendar item could not be parsed"""
    pass


class RuleParseError(SyncError):
    """A recurrence rule could not be parsed"""
    pass


class InsertConflict(SyncError):
    """Storage rejected one occurrence"""

    def __init__(self, external_id: str, message: str):
        super().__init__(f"{external_id}: {message}")
        self.external_id = external_id


class SyncTimeout(SyncError):
    """The run exceeded its deadline"""
    pass
