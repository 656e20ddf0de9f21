"""
Custom exceptions for the ballot grouping application.

All application-specific exceptions inherit from IntelliGroupError.
"""

from __future__ import annotations

from typing import Optional, Any


class IntelliGroupError(Exception):
    """
    Base exception for all application errors.
    
    Attributes:
        message: Human-readable error message
        details: Additional error details (for debugging)
        recoverable: Whether the error can potentially be recovered from
    """
    
    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
    
    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(IntelliGroupError):
    """
    Invalid or missing configuration.
    
    Examples:
        - Unsupported AI provider
        - Missing API key when processing is requested
    """
    
    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details, recoverable=False)


class PageExtractionError(IntelliGroupError):
    """
    Failed to turn a source file into page images.
    
    Examples:
        - Corrupted or password-protected PDF
        - Unsupported file type
    """
    
    def __init__(
        self,
        message: str,
        source_file: Optional[str] = None,
        page_number: Optional[int] = None
    ):
        details = {}
        if source_file:
            details["source_file"] = source_file
        if page_number is not None:
            details["page_number"] = page_number
        super().__init__(message, details=details, recoverable=False)


class FieldExtractionError(IntelliGroupError):
    """
    The vision model call for one page failed.
    
    Transport errors, empty completions and unparseable JSON all land here.
    The grouping engine degrades such a page to an empty extraction.
    """
    
    def __init__(
        self,
        message: str,
        page_id: Optional[str] = None,
        ai_provider: Optional[str] = None,
        response_text: Optional[str] = None
    ):
        details = {}
        if page_id:
            details["page_id"] = page_id
        if ai_provider:
            details["ai_provider"] = ai_provider
        if response_text:
            # Truncate long responses
            details["response_preview"] = response_text[:500] if len(response_text) > 500 else response_text
        super().__init__(message, details=details, recoverable=True)


class AuthorizationExpiredError(IntelliGroupError):
    """
    The model provider rejected our credential (expired, revoked or missing).
    
    Aborts the remaining run. ``state`` holds whatever was grouped before
    the failure so callers can keep the partial result.
    """
    
    def __init__(
        self,
        message: str = "API key expired or not authorized",
        ai_provider: Optional[str] = None,
        state: Any = None,
    ):
        details = {"ai_provider": ai_provider} if ai_provider else None
        super().__init__(message, details=details, recoverable=False)
        self.state = state
    
    @property
    def documents(self) -> list:
        """Documents grouped before the run was aborted."""
        if self.state is None:
            return []
        return list(self.state.documents)


class ExportError(IntelliGroupError):
    """
    Failed to write a CSV registry or a per-document PDF.
    """
    
    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        document_id: Optional[str] = None
    ):
        details = {}
        if file_path:
            details["file_path"] = file_path
        if document_id:
            details["document_id"] = document_id
        super().__init__(message, details=details, recoverable=False)


class DataPersistenceError(IntelliGroupError):
    """
    Failed to save or load the persisted document set.
    
    Examples:
        - File write permission denied
        - Invalid JSON format
        - Page image referenced by documents.json is missing
    """
    
    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        operation: Optional[str] = None  # "save" or "load"
    ):
        details = {}
        if file_path:
            details["file_path"] = file_path
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details, recoverable=False)
