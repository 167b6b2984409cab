"""
prompt-mix — manage the prompt mix library from a terminal.

Usage:
    prompt-mix list [--search TEXT] [--sort newest|oldest|a-z|z-a] [--view details|grid|list]
    prompt-mix add --title T --url U [--prompt P] [--negative N]
    prompt-mix edit ID --title T --url U [--prompt P] [--negative N]
    prompt-mix delete ID
    prompt-mix export [--out DIR]
    prompt-mix import FILE
    prompt-mix rename NAME
    prompt-mix theme [--toggle]
    prompt-mix serve            # HTTP API
    prompt-mix mcp [--transport sse]
"""

import argparse
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .config import Settings
from .errors import ImportValidationError
from .models import MixFormData, SortOption, ViewMode
from .query import process_mixes
from .storage import LocalStorage
from .store import MixStore
from .transfer import export_library, import_library

# ── terminal helpers ──────────────────────────────────────────────────────────

_TERM_WIDTH = shutil.get_terminal_size((80, 20)).columns

GREEN  = "\033[0;32m"
YELLOW = "\033[1;33m"
RED    = "\033[0;31m"
BOLD   = "\033[1m"
DIM    = "\033[2m"
NC     = "\033[0m"


def _clip(text: str, width: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[: max(0, width - 1)] + "…"


def _print_mixes(mixes, view: str) -> None:
    if not mixes:
        print(f"{DIM}No mixes found.{NC}")
        return
    for mix in mixes:
        if view == ViewMode.LIST.value:
            print(f"{BOLD}{_clip(mix.title, 40):<40}{NC}  {DIM}{mix.id}{NC}")
            continue
        print(f"{BOLD}{mix.title}{NC}  {DIM}{mix.id}{NC}")
        print(f"  {mix.url}")
        if view == ViewMode.DETAILS.value:
            print(f"  {GREEN}+{NC} {mix.prompt}")
            if mix.negative_prompt:
                print(f"  {RED}-{NC} {mix.negative_prompt}")
        else:
            print(f"  {_clip(mix.prompt, _TERM_WIDTH - 4)}")
        print()


def _form(args) -> MixFormData:
    return MixFormData(
        title=args.title,
        url=args.url,
        prompt=args.prompt,
        negative_prompt=args.negative,
    )


# ── parser ────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prompt-mix",
        description="Manage a local library of image prompt mixes.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="Search and list mixes")
    p.add_argument("--search", default="")
    p.add_argument("--sort", default=SortOption.NEWEST.value,
                   choices=[o.value for o in SortOption])
    p.add_argument("--view", default=ViewMode.GRID.value,
                   choices=[v.value for v in ViewMode])

    for name in ("add", "edit"):
        p = sub.add_parser(name, help=f"{name.capitalize()} a mix")
        if name == "edit":
            p.add_argument("id")
        p.add_argument("--title", required=True)
        p.add_argument("--url", required=True)
        p.add_argument("--prompt", default="")
        p.add_argument("--negative", default="", help="Negative prompt")

    p = sub.add_parser("delete", help="Delete a mix")
    p.add_argument("id")

    p = sub.add_parser("export", help="Write the library to a JSON file")
    p.add_argument("--out", type=Path, default=Path("."), help="Output directory")

    p = sub.add_parser("import", help="Merge a JSON library file")
    p.add_argument("file", type=Path)

    p = sub.add_parser("rename", help="Set the library name")
    p.add_argument("name")

    p = sub.add_parser("theme", help="Show or toggle the theme preference")
    p.add_argument("--toggle", action="store_true")

    sub.add_parser("serve", help="Run the HTTP API")

    p = sub.add_parser("mcp", help="Run the MCP server")
    p.add_argument("--transport", default="stdio", choices=["stdio", "sse"])
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    return parser


# ── main ──────────────────────────────────────────────────────────────────────

def main(argv: Optional[List[str]] = None, store: Optional[MixStore] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    if args.command == "serve":
        from .app import main as serve_main
        serve_main()
        return 0
    if args.command == "mcp":
        from .mcp_server import main as mcp_main
        mcp_main(["--transport", args.transport, "--host", args.host, "--port", str(args.port)])
        return 0

    if store is None:
        store = MixStore(LocalStorage(settings.storage_path))
        store.initialize()

    if args.command == "list":
        title = store.library_name or "Prompt Library"
        mixes = process_mixes(store.mixes, query=args.search, sort=args.sort)
        print(f"{BOLD}{title}{NC}  {DIM}{len(mixes)}/{len(store)} mixes{NC}\n")
        _print_mixes(mixes, args.view)

    elif args.command == "add":
        mix = store.add(_form(args))
        print(f"{GREEN}✓{NC} Added {mix.title} ({mix.id})")

    elif args.command == "edit":
        mix = store.update(args.id, _form(args))
        if mix is None:
            print(f"{RED}ERROR:{NC} Mix {args.id} not found", file=sys.stderr)
            return 1
        print(f"{GREEN}✓{NC} Updated {mix.title}")

    elif args.command == "delete":
        if store.delete(args.id):
            print(f"{GREEN}✓{NC} Deleted {args.id}")
        else:
            print(f"{YELLOW}Nothing to delete:{NC} no mix with id {args.id}")

    elif args.command == "export":
        result = export_library(store)
        args.out.mkdir(parents=True, exist_ok=True)
        target = args.out / result.filename
        target.write_bytes(result.content)
        print(f"{GREEN}✓{NC} Exported {result.count} mixes to {target}")

    elif args.command == "import":
        try:
            raw = args.file.read_bytes()
        except OSError as e:
            print(f"{RED}ERROR:{NC} Could not read {args.file}: {e}", file=sys.stderr)
            return 1
        try:
            summary = import_library(store, raw)
        except ImportValidationError as e:
            print(f"{RED}ERROR:{NC} {e}", file=sys.stderr)
            return 1
        print(f"{GREEN}✓{NC} {summary.message}")
        if summary.library_name:
            print(f"  Library renamed to {summary.library_name}")

    elif args.command == "rename":
        store.set_library_name(args.name)
        print(f"{GREEN}✓{NC} Library renamed to {args.name}")

    elif args.command == "theme":
        theme = store.toggle_theme() if args.toggle else store.theme
        print(theme.value)

    return 0


if __name__ == "__main__":
    sys.exit(main())
