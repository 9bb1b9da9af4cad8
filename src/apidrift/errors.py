"""
Error types for apidrift.

Every error that aborts a check derives from ApiDriftError so the CLI can tell
tooling failure apart from divergences found in the contract.
"""
from __future__ import annotations

from typing import Optional


class ApiDriftError(Exception):
    """Base error. Carries the raw oracle text when there is one."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        self.message = message
        self.raw_text = raw_text
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "raw_text": self.raw_text,
        }


class ConfigurationError(ApiDriftError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""


class ContractLoadError(ApiDriftError):
    """The contract document could not be read or is not an OpenAPI/Swagger mapping."""


class OracleError(ApiDriftError):
    """Base for failures talking to the reasoning oracle."""


class OracleEmptyResponse(OracleError):
    """The oracle answered with no text."""


class OracleTimeout(OracleError):
    """The oracle did not answer within the request timeout. Not retried."""


class OracleRequestError(OracleError):
    """Transport failure or non-success HTTP status from the oracle."""

    def __init__(self, message: str, status_code: Optional[int] = None, raw_text: Optional[str] = None):
        super().__init__(message, raw_text=raw_text)
        self.status_code = status_code

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["status_code"] = self.status_code
        return d


class PayloadSchemaError(ApiDriftError):
    """The oracle payload does not have the shape the engine needs (e.g. `apis` is not a list)."""


class OracleMalformedResponse(PayloadSchemaError):
    """
    The oracle text holds no parseable JSON object.

    A PayloadSchemaError too: a payload that is not JSON cannot have an `apis` array.
    """


class CacheIOError(ApiDriftError):
    """Reading or writing a cache entry failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["path"] = self.path
        return d
