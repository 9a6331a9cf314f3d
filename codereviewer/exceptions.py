"""
Custom exception hierarchy for codereviewer.ai
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Why a backend request failed"""

    QUOTA = "quota"
    HTTP = "http"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    PARSE = "parse"


class CodeReviewerException(Exception):
    """Base exception for all codereviewer errors"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(CodeReviewerException):
    """No provider selected, unknown provider or missing credentials"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get("details", {})
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, details, kwargs.get("original_error"))
        self.config_key = config_key


class ProviderRequestFailed(CodeReviewerException):
    """Network, HTTP or parse failure from an AI backend"""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
        kind: ErrorKind = ErrorKind.HTTP,
        **kwargs
    ):
        details = kwargs.get("details", {})
        if provider:
            details["provider"] = provider
        if model:
            details["model"] = model
        if status_code:
            details["status_code"] = status_code

        super().__init__(message, details, kwargs.get("original_error"))
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.kind = kind

    @property
    def is_quota_exhausted(self) -> bool:
        return self.kind is ErrorKind.QUOTA


class AllFallbacksExhausted(ProviderRequestFailed):
    """Every substitute model failed after a quota error on the primary"""

    def __init__(
        self,
        message: str,
        attempted_models: Optional[List[str]] = None,
        last_error: Optional[ProviderRequestFailed] = None,
        **kwargs
    ):
        attempted_models = list(attempted_models or [])
        details = kwargs.pop("details", {})
        details["attempted_models"] = attempted_models

        super().__init__(
            message,
            provider=getattr(last_error, "provider", None),
            model=getattr(last_error, "model", None),
            status_code=getattr(last_error, "status_code", None),
            kind=getattr(last_error, "kind", ErrorKind.QUOTA),
            details=details,
            original_error=kwargs.get("original_error", last_error),
        )
        self.attempted_models = attempted_models
        self.last_error = last_error


class PersistenceFailed(CodeReviewerException):
    """History file could not be read or written"""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get("details", {})
        if path:
            details["path"] = path

        super().__init__(message, details, kwargs.get("original_error"))
        self.path = path


class VersionControlError(CodeReviewerException):
    """git invocation failed"""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.get("details", {})
        if command:
            details["command"] = " ".join(command)
        if returncode is not None:
            details["returncode"] = returncode

        super().__init__(message, details, kwargs.get("original_error"))
        self.returncode = returncode
