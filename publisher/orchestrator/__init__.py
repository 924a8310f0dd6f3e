"""Orchestrator package - drives the publish protocol."""
from .core import UploadOrchestrator
from .models import PublishState
from .retry import AuthRetryWrapper, RENEWAL_NOTICE

__all__ = ["UploadOrchestrator", "PublishState", "AuthRetryWrapper", "RENEWAL_NOTICE"]
