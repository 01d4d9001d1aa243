"""
bound-preview - context-elevating REST dispatch for live previews.

Packages:
- bound_preview.core: errors, settings, logging, events
- bound_preview.rest: in-process REST server and the context-elevating dispatcher
- bound_preview.bindings: field ↔ route bindings and their registry
- bound_preview.sync: debounced live-preview synchronizer
- bound_preview.api / bound_preview.cli: HTTP and command-line surfaces
"""

__version__ = "0.1.0"

from bound_preview.manager import PreviewManager, PublishReport  # noqa: E402
from bound_preview.session import NonceIssuer, PreviewSession  # noqa: E402

__all__ = ["NonceIssuer", "PreviewManager", "PreviewSession", "PublishReport", "__version__"]
