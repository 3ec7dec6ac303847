from __future__ import annotations

import argparse
from contextlib import ExitStack, closing
from pathlib import Path

from .browser import InstacartSession
from .cache import JsonFileCacheStore, MemoryCacheStore, sweep_stale_entries
from .client import InstacartClient
from .config import OPTIONAL_KEYS, REQUIRED_KEYS, Config, cache_path_from_env
from .http import HttpClient
from .log_config import setup_logging
from .pipeline import ComparisonPipeline
from .progress import JsonLinesListener, ProgressReporter, logging_listener
from .report import build_report
from .shops import list_retailers, load_apollo_state, parse_shop_directory, select_shops

__version__ = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="instacart-compare")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("-q", "--quiet", action="store_true", help="Only warnings and errors")

    sub = p.add_subparsers(dest="cmd", required=False)

    p_config = sub.add_parser("config", help="Config commands")
    sub_config = p_config.add_subparsers(dest="config_cmd", required=True)
    sub_config.add_parser("keys", help="List config keys")
    sub_config.add_parser("check", help="Validate required config is filled")

    p_retailers = sub.add_parser("retailers", help="List retailers in the session state")
    _add_state_args(p_retailers)

    p_compare = sub.add_parser("compare", help="Fetch every selected shop and compare prices")
    _add_state_args(p_compare)
    p_compare.add_argument("--retailers", nargs="+", help="Retailer names (default: INSTACART_RETAILERS)")
    p_compare.add_argument("--out", default="artifacts/comparison.json", help="JSON report path")
    p_compare.add_argument("--events", help="Append progress events as JSON lines to this file")
    p_compare.add_argument("--no-cache", action="store_true", help="Use a throwaway in-memory cache")
    p_compare.add_argument("--top", type=int, default=5, help="Items shown per category in the summary")

    p_cache = sub.add_parser("cache", help="Cache commands")
    sub_cache = p_cache.add_subparsers(dest="cache_cmd", required=True)
    for name, help_text in (("sweep", "Drop entries from previous days"), ("show", "List cache keys")):
        sp = sub_cache.add_parser(name, help=help_text)
        sp.add_argument("--path", help="Cache file (default: INSTACART_CACHE_PATH)")

    return p


def _add_state_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--state", help="File holding the page's node-apollo-state JSON")
    p.add_argument("--cdp", help="CDP URL of a browser with an Instacart tab open")


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    if args.cmd is None:
        p.print_help()
        return 0

    setup_logging(verbose=args.verbose, quiet=args.quiet)

    if args.cmd == "config":
        if args.config_cmd == "keys":
            for k in REQUIRED_KEYS:
                print(k)
            for k in OPTIONAL_KEYS:
                print(f"{k} (optional)")
            return 0

        if args.config_cmd == "check":
            # Never print the values; the cookie is a credential.
            cfg = Config.load_from_env()
            print(f"OK: config present ({len(cfg.retailers)} retailers)")
            return 0

    if args.cmd == "retailers":
        with ExitStack() as stack:
            state_text, _ = _open_state(args, stack, cdp_default=None)
            shops = parse_shop_directory(load_apollo_state(state_text))
            for name in list_retailers(shops):
                print(name)
        return 0

    if args.cmd == "compare":
        return _run_compare(args)

    if args.cmd == "cache":
        path = args.path or cache_path_from_env()
        store = JsonFileCacheStore(path)

        if args.cache_cmd == "sweep":
            removed = sweep_stale_entries(store)
            print(f"OK: removed {removed} stale entries from {path}")
            return 0

        if args.cache_cmd == "show":
            for key, value in sorted(store.enumerate().items()):
                size = len(value) if isinstance(value, dict) else 1
                print(f"{key}  ({size})")
            return 0

    raise RuntimeError("unreachable")


def _open_state(args, stack: ExitStack, *, cdp_default: str | None) -> tuple[str, InstacartSession | None]:
    cdp = args.cdp or cdp_default
    session = stack.enter_context(InstacartSession(cdp)) if cdp else None

    if args.state:
        return Path(args.state).read_text(encoding="utf-8"), session
    if session is not None:
        return session.read_apollo_state(), session
    raise SystemExit("error: pass --state FILE or --cdp URL")


def _run_compare(args) -> int:
    cfg = Config.load_from_env()
    names = args.retailers or list(cfg.retailers)

    with ExitStack() as stack:
        state_text, session = _open_state(args, stack, cdp_default=cfg.cdp_url)
        directory = parse_shop_directory(load_apollo_state(state_text))
        shops = select_shops(directory, names, service_type=cfg.service_type)
        if not shops:
            print(f"No {cfg.service_type} shops match: {', '.join(names)}")
            return 1

        if session is not None:
            transport = session
        else:
            transport = stack.enter_context(closing(HttpClient(base_url=cfg.base_url, cookie=cfg.cookie)))

        client = InstacartClient(
            transport,
            postal_code=cfg.postal_code,
            zone_id=cfg.zone_id,
            page_view_id=cfg.page_view_id,
        )
        store = MemoryCacheStore() if args.no_cache else JsonFileCacheStore(cfg.cache_path)

        reporter = ProgressReporter([logging_listener])
        if args.events:
            events_out = Path(args.events)
            events_out.parent.mkdir(parents=True, exist_ok=True)
            reporter.subscribe(JsonLinesListener(stack.enter_context(events_out.open("a", encoding="utf-8"))))

        print(f"Comparing {len(shops)} shops: {', '.join(s.retailer for s in shops)}")
        view = ComparisonPipeline(client, store, reporter=reporter).run(shops)

    report = build_report(view, postal_code=cfg.postal_code)
    print("\n" + report.summary_text(per_category=args.top))
    path = report.write_json(args.out)
    print(f"\nReport written to {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
