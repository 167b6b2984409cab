"""
FastMCP Server for the Prompt Mix Library

Exposes the library as MCP tools so an assistant can browse, edit, import
and export mixes.

stdio (default):
  python -m prompt_mix.mcp_server

HTTP (SSE):
  python -m prompt_mix.mcp_server --transport sse [--host 127.0.0.1] [--port 8000]
"""

import argparse
import signal
import sys
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
from loguru import logger

from .config import Settings
from .errors import ImportValidationError
from .models import MixFormData, SortOption
from .query import process_mixes
from .storage import LocalStorage
from .store import MixStore
from . import transfer


def build_server(store: MixStore) -> FastMCP:
    """Create an MCP server whose tools operate on ``store``."""
    mcp = FastMCP("Prompt Mix Library")

    @mcp.tool()
    async def list_mixes(
        query: str = "",
        sort: str = SortOption.NEWEST.value,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """
        Search and sort the mixes in the library.

        Args:
            query: Case-insensitive text matched against title, prompt and negative prompt.
            sort: newest, oldest, a-z or z-a (default newest).
            limit: Maximum results (default 50).

        Returns:
            List of mixes.
        """
        mixes = process_mixes(store.mixes, query=query, sort=sort)
        return [m.to_json_dict() for m in mixes[:max(0, limit)]]

    @mcp.tool()
    async def get_mix(mix_id: str) -> Dict[str, Any]:
        """Return one mix by id."""
        mix = store.get(mix_id)
        if not mix:
            return {"success": False, "error": f"Mix {mix_id} not found"}
        return {"success": True, "mix": mix.to_json_dict()}

    @mcp.tool()
    async def add_mix(
        title: str,
        url: str,
        prompt: str = "",
        negative_prompt: str = "",
    ) -> Dict[str, Any]:
        """
        Add a mix to the front of the library.

        Args:
            title: Display title.
            url: Image URL.
            prompt: Positive generation prompt.
            negative_prompt: What the generation should avoid.
        """
        mix = store.add(MixFormData(
            title=title, url=url, prompt=prompt, negative_prompt=negative_prompt,
        ))
        return {"success": True, "mix": mix.to_json_dict()}

    @mcp.tool()
    async def update_mix(
        mix_id: str,
        title: str,
        url: str,
        prompt: str = "",
        negative_prompt: str = "",
    ) -> Dict[str, Any]:
        """Replace a mix's editable fields. Its id and creation time are kept."""
        mix = store.update(mix_id, MixFormData(
            title=title, url=url, prompt=prompt, negative_prompt=negative_prompt,
        ))
        if not mix:
            return {"success": False, "error": f"Mix {mix_id} not found"}
        return {"success": True, "mix": mix.to_json_dict()}

    @mcp.tool()
    async def delete_mix(mix_id: str) -> Dict[str, Any]:
        """Delete a mix. Deleting an unknown id is not an error."""
        return {"success": True, "deleted": store.delete(mix_id)}

    @mcp.tool()
    async def rename_library(name: str) -> Dict[str, Any]:
        """Set the library display name."""
        store.set_library_name(name)
        return {"success": True, "name": store.library_name}

    @mcp.tool()
    async def export_library() -> Dict[str, Any]:
        """
        Export the whole library.

        Returns:
            filename and the JSON document text.
        """
        result = transfer.export_library(store)
        return {
            "success": True,
            "filename": result.filename,
            "count": result.count,
            "document": result.content.decode("utf-8"),
        }

    @mcp.tool()
    async def import_library(document: str) -> Dict[str, Any]:
        """
        Merge a library document (or a legacy array of mixes) into the library.

        Mixes whose id is already present are skipped.

        Args:
            document: JSON text of the document.
        """
        try:
            summary = transfer.import_library(store, document)
        except ImportValidationError as e:
            return {"success": False, "error": str(e), "details": e.to_dict()}
        return {
            "success": True,
            "message": summary.message,
            **summary.model_dump(),
        }

    return mcp


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None):
    """Run the MCP server."""

    def handle_shutdown(sig, frame):
        logger.info("Shutting down MCP server...")
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    parser = argparse.ArgumentParser()
    parser.add_argument("--transport", default="stdio", choices=["stdio", "sse"])
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    store = MixStore(LocalStorage(settings.storage_path))
    store.initialize()
    mcp = build_server(store)

    logger.info("Starting Prompt Mix MCP Server...")
    if args.transport == "sse":
        mcp.run(transport="sse", host=args.host, port=args.port)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
