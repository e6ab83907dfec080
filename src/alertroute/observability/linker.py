"""AlertRouteEventLinker: isolated event namespace for alertroute observability.

All alertroute subscribers register here, separate from any other
pyventus usage in the process.
"""

from __future__ import annotations

from pyventus.events import EventLinker


class AlertRouteEventLinker(EventLinker):
    """Isolated event namespace for alertroute observability."""

    pass
