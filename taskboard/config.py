"""Taskboard domain configuration.

Limits and feature flags for proof handling, the notification inbox and
focus sessions, as a frozen dataclass with environment overrides.
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProofConfig:
    """Upload limits for file proof."""

    max_file_size: int = 10 * 1024 * 1024  # bytes
    allowed_mime_types: frozenset[str] = field(
        default_factory=lambda: frozenset({"image/jpeg", "image/png", "audio/mpeg", "audio/wav"})
    )


@dataclass(frozen=True)
class TaskboardConfig:
    """Complete configuration for the taskboard domain.

    Usage::

        config = TaskboardConfig.from_env()
        if len(content) > config.proof.max_file_size:
            raise ValidationError("File exceeds the 10MB limit")
    """

    proof: ProofConfig = field(default_factory=ProofConfig)
    notification_list_limit: int = 50
    default_focus_minutes: int = 25

    # When set, PUT /tasks cannot move a task into a verification state;
    # only proof submission and review can.
    lock_verification_statuses: bool = False

    @classmethod
    def default(cls) -> "TaskboardConfig":
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "TASKBOARD_") -> "TaskboardConfig":
        """Create config from environment variables.

        Example: TASKBOARD_LOCK_VERIFICATION_STATUSES=true
        """
        overrides = {}
        lock = os.getenv(f"{prefix}LOCK_VERIFICATION_STATUSES")
        if lock:
            overrides["lock_verification_statuses"] = lock.lower() == "true"
        limit = os.getenv(f"{prefix}NOTIFICATION_LIST_LIMIT")
        if limit:
            overrides["notification_list_limit"] = int(limit)
        max_size = os.getenv(f"{prefix}MAX_PROOF_FILE_SIZE")
        if max_size:
            overrides["proof"] = ProofConfig(max_file_size=int(max_size))
        focus = os.getenv(f"{prefix}DEFAULT_FOCUS_MINUTES")
        if focus:
            overrides["default_focus_minutes"] = int(focus)

        return cls(**overrides)
