# opaboard/cli/main.py

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from opaboard.adapters.opa_client import OpaClient
from opaboard.adapters.settings_store import load_api_settings, missing_db_env
from opaboard.core.config_loader import (
    engine_options_from_config,
    load_app_config,
    normalize_config,
)
from opaboard.core.dates import FixedClock
from opaboard.core.reconcile import reconcile_payload
from opaboard.services.logger import init_logger
from opaboard.services.polling_service import refresh_once, run_polling_loop


def build_client(config: Dict[str, Any]) -> OpaClient:
    upstream_cfg = config.get("upstream", {})
    base_url = upstream_cfg.get("base_url", "")
    token = upstream_cfg.get("token", "")

    if str(upstream_cfg.get("settings_source", "config")).lower() == "db":
        settings = load_api_settings()
        if settings is None:
            raise RuntimeError("upstream.settings_source is 'db' but no API settings could be read")
        base_url, token = settings.api_url, settings.api_token
        print("[INFO] Using upstream settings from the dashboard DB", file=sys.stderr)

    if not base_url:
        raise RuntimeError("upstream.base_url is not set in config/config.yaml")

    return OpaClient(
        base_url=base_url,
        token=token,
        token_env=upstream_cfg.get("token_env", "OPABOARD_API_TOKEN"),
        timeout_seconds=upstream_cfg.get("timeout_seconds", 30),
        verify_ssl=upstream_cfg.get("verify_ssl", True),
        fetch_departments=upstream_cfg.get("fetch_departments", True),
    )


def _load_payload(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    # A bare list is treated as a ticket dump.
    if isinstance(data, list):
        return {"tickets": data}
    return data


def _dump(data: Any, pretty: bool) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2 if pretty else None))


def _load_config_for_offline(explicit: Optional[str]) -> Dict[str, Any]:
    try:
        config, _config_path, _base_dir = load_app_config(explicit)
        return config
    except FileNotFoundError:
        if explicit:
            raise
        config, _ = normalize_config({}, config_path=Path.cwd() / "config.yaml")
        return config


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(prog="opaboard")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config YAML (overrides $OPABOARD_CONFIG and defaults)",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    # opaboard reconcile dump.json --now "2024-01-01 10:05:00"
    parser_reconcile = subparsers.add_parser("reconcile")
    parser_reconcile.add_argument("file", help="JSON dump of the proxy payload (or a bare ticket list)")
    parser_reconcile.add_argument("--now", type=str, default=None,
                                  help="Reference time for elapsed durations (default: wall clock)")
    parser_reconcile.add_argument("--pretty", action="store_true", help="Indent JSON output")

    # opaboard fetch --pretty
    parser_fetch = subparsers.add_parser("fetch")
    parser_fetch.add_argument("--pretty", action="store_true", help="Indent JSON output")

    # opaboard poll --once
    parser_poll = subparsers.add_parser("poll")
    parser_poll.add_argument("--once", action="store_true",
                             help="Run once and exit (don't poll continuously)")
    parser_poll.add_argument("--interval", type=int, default=None,
                             help="Poll interval in seconds (overrides config)")

    # opaboard doctor
    parser_doctor = subparsers.add_parser("doctor")
    parser_doctor.add_argument("--check-db", action="store_true", help="Also check DB env vars are set")

    args = parser.parse_args(argv)

    if args.command == "reconcile":
        config = _load_config_for_offline(args.config)
        options = engine_options_from_config(config)
        clock = None
        if args.now:
            clock = FixedClock(args.now, options.timezone)
            if clock() == 0:
                parser.error("--now: unrecognized date %r" % args.now)
        payload = _load_payload(args.file)
        result = reconcile_payload(payload, options=options, clock=clock)
        _dump(result.to_dict(), args.pretty)
        return 0

    # ---- Load config ----
    config, config_path, base_dir = load_app_config(args.config)
    options = engine_options_from_config(config)

    if args.command == "fetch":
        client = build_client(config)
        outcome = refresh_once(client, options=options)
        for name, err in outcome.upstream_errors.items():
            print(f"[WARN] upstream {name} failed: {err}", file=sys.stderr)
        if not outcome.success:
            print(f"[ERROR] Fetch failed: {outcome.error}", file=sys.stderr)
        _dump(outcome.result.to_dict(), args.pretty)
        return 0 if outcome.success else 1

    print("[INFO] Using config: %s" % config_path)
    print("[INFO] Base dir: %s" % base_dir)

    if args.command == "poll":
        refresh_logger = init_logger(config)
        if refresh_logger:
            print("[INFO] Logging enabled: %s" % refresh_logger._get_log_path())

        client = build_client(config)
        polling_cfg = config.get("polling", {})
        poll_interval = args.interval or polling_cfg.get("poll_interval_seconds", 30)

        run_polling_loop(
            client,
            poll_interval_seconds=poll_interval,
            run_once=args.once,
            options=options,
            max_inflight=polling_cfg.get("max_inflight", 2),
            refresh_logger=refresh_logger,
        )
        return 0

    if args.command == "doctor":
        ok = True
        print("[OK] Config file: %s" % config_path)
        print("[OK] Base dir: %s" % base_dir)
        print("[OK] Engine timezone: %s" % options.timezone)

        upstream_cfg = config.get("upstream", {})
        source = str(upstream_cfg.get("settings_source", "config")).lower()
        if source == "db":
            print("[OK] Upstream settings read from the dashboard DB")
        elif upstream_cfg.get("base_url"):
            print("[OK] upstream.base_url: %s" % upstream_cfg["base_url"])
        else:
            ok = False
            print("[FAIL] upstream.base_url is empty")

        token = str(upstream_cfg.get("token") or "").strip()
        token_env = upstream_cfg.get("token_env", "OPABOARD_API_TOKEN")
        if source != "db":
            if token or os.environ.get(token_env, "").strip():
                print("[OK] API token available via %s" % ("config" if token else token_env))
            else:
                ok = False
                print("[FAIL] API token missing: set %s (recommended) or upstream.token in config" % token_env)

        if args.check_db or source == "db":
            missing = missing_db_env()
            if missing and source == "db":
                ok = False
                print("[FAIL] DB env vars missing: %s" % ", ".join(missing))
            elif missing:
                print("[WARN] DB env vars missing: %s" % ", ".join(missing))
            else:
                print("[OK] DB env vars present")
        return 0 if ok else 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
