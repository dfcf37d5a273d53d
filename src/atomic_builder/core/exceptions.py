"""
Custom exceptions for component discovery, rendering and form handling.
"""

from typing import Dict, Optional


class AtomicBuilderException(Exception):
    """Base exception for the application."""
    pass

class ComponentNotFoundException(AtomicBuilderException):
    """Raised when a plugin id, story file or owning extension cannot be resolved."""
    pass

class TemplateNotFoundException(AtomicBuilderException):
    """Raised when a component template is missing or cannot be compiled."""
    pass

class InvalidComponentException(AtomicBuilderException):
    """Raised when a component manifest cannot be parsed."""
    pass

class FormValidationException(AtomicBuilderException):
    """Raised when submitted form values fail validation."""

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message or "; ".join(f"{k}: {v}" for k, v in errors.items()))
