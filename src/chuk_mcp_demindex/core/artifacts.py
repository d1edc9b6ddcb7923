"""
Artifact storage for stitched maps.

Maps are encoded as GeoTIFF and handed to the chuk-artifacts store
registered with chuk-mcp-server. The store is resolved per call so a store
configured at startup (or patched in tests) is always picked up.
"""

import logging
import uuid
from typing import Any

from ..constants import ErrorMessages

logger = logging.getLogger(__name__)


def get_store() -> Any:
    """Get the artifact store instance."""
    from chuk_mcp_server import get_artifact_store

    store = get_artifact_store()
    if store is None:
        raise RuntimeError(ErrorMessages.NO_ARTIFACT_STORE)
    return store


async def store_raster(data: bytes, metadata: dict, suffix: str = ".tif") -> str:
    """Store raster bytes and return the artifact reference."""
    try:
        store = get_store()
        ref = f"demindex/{uuid.uuid4().hex[:12]}{suffix}"
        await store.store(
            ref,
            data,
            mime_type="image/tiff",
            metadata=metadata,
            summary=f"Stitched elevation map ({metadata.get('type', 'map')})",
        )
        return ref
    except Exception as e:
        logger.error(f"Failed to store raster: {e}")
        raise
