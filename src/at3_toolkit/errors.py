"""Exceptions raised by the AT3 toolkit."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import MigrationResult


class At3Error(Exception):
    """Base class for every error the toolkit reports to the user."""


class NotFoundError(At3Error):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Project path does not exist: {path}")


class InvalidProjectError(At3Error):
    def __init__(self, path, message: str | None = None):
        self.path = path
        super().__init__(
            message or "No package.json found. This does not appear to be a Node.js project."
        )


class InvalidProjectNameError(At3Error):
    def __init__(self, name: str, problems: list[str]):
        self.name = name
        self.problems = problems
        super().__init__(f"Invalid project name '{name}': {'; '.join(problems)}")


class StepFailedError(At3Error):
    """A required migration step failed; the remaining plan was aborted."""

    def __init__(self, step_id: str, cause: BaseException, result: "MigrationResult"):
        self.step_id = step_id
        self.cause = cause
        self.result = result
        super().__init__(f"Required step '{step_id}' failed: {cause}")


class NoBackupError(At3Error):
    pass


class UnknownFeatureError(At3Error):
    def __init__(self, feature: str, valid: list[str]):
        self.feature = feature
        self.valid = valid
        super().__init__(f"Unknown feature: {feature}. Valid features: {', '.join(valid)}")


class RegistryError(At3Error):
    pass
