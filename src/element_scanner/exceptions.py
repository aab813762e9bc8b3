"""
Exception hierarchy for element scanning.

Three families of failures:
- Registration errors: raised synchronously by add_listener(), never mid-parse
- Listener errors: an application callback failed, the parse is aborted
- State errors: the scanner was misused or the upstream event stream broke
  its contract (mismatched close, reentrant parse)

Errors coming from the upstream SAX reader (SAXParseException, I/O errors)
are NOT wrapped and surface unchanged.
"""

from typing import Any, Optional
from xml.sax import SAXException


class ScannerError(Exception):
    """Base class for all element scanner errors."""


class RegistrationError(ScannerError, ValueError):
    """A listener registration was rejected."""


class InvalidListenerError(RegistrationError):
    """The listener is missing or not callable."""


class PatternSyntaxError(RegistrationError):
    """
    A path pattern could not be compiled.

    Attributes:
        expression: The offending pattern string
    """

    def __init__(self, message: str, expression: Optional[str] = None):
        super().__init__(message)
        self.expression = expression


class ListenerError(ScannerError, SAXException):
    """
    A listener raised while being notified of a matched element.

    Subclasses SAXException so it travels through any SAX reader
    unchanged and terminates the parse. The original exception is
    available from getException() and as __cause__.

    Attributes:
        path: Path of the element being dispatched
        listener: The listener that failed
    """

    def __init__(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        path: Optional[str] = None,
        listener: Any = None
    ):
        SAXException.__init__(self, message, exception)
        self.path = path
        self.listener = listener

    def __str__(self) -> str:
        return self.getMessage()


class ScannerStateError(ScannerError, RuntimeError):
    """The scanner was used out of sequence or the event stream is inconsistent."""
