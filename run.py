#!/usr/bin/env python3
"""
modsync - installed content identity and update engine
- Identifies installed mods / resource packs / shaders against Modrinth and CurseForge
- Checks identified content for compatible updates
- Serves the results as a JSON API
- Refreshes every configured instance in the background
"""

import os, sys, logging

from modsync import create_app
from modsync.errors import UnknownInstance
from modsync.scheduler import ContentScheduler
from modsync.services.content_service import ContentService, LISTED_TYPES
from modsync.utils.config import get_config, get_home
from modsync.utils.query_generator import generate_queries

LOG_FILE = os.path.join(get_home(), "modsync.log")
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
    handlers=[logging.FileHandler(LOG_FILE), logging.StreamHandler()]
)
log = logging.getLogger(__name__)


def print_records(records):
    for r in records:
        marker = "*" if r.update_available else " "
        target = f" -> {r.update_file_name}" if r.update_available else ""
        print(f" {marker} {r.state:<16} {r.name} ({r.author}) [{r.file_name}]{target}")


def usage():
    print("\nUsage: python3 run.py [command] [args]\n")
    print("Commands:")
    print("  serve                       HTTP API + background refresh (default)")
    print("  refresh <instance> [type]   Identify and check updates (type: mod|resourcepack|shader)")
    print("  forget <instance>           Drop every cached record of an instance")
    print("  queries <file name>         Show the search queries for a file name\n")


def main():
    cfg = get_config()
    cmd = sys.argv[1] if len(sys.argv) > 1 else "serve"

    if cmd in ("--help", "-h", "help"):
        usage()
        return

    if cmd == "queries":
        if len(sys.argv) < 3:
            usage()
            sys.exit(1)
        for q in generate_queries(sys.argv[2]):
            print(q)
        return

    service = ContentService(cfg)

    if cmd == "refresh":
        if len(sys.argv) < 3:
            usage()
            sys.exit(1)
        instance_id = sys.argv[2]
        types = [sys.argv[3]] if len(sys.argv) > 3 else list(LISTED_TYPES)
        try:
            for content_type in types:
                print(f"\n[{instance_id}] {content_type}")
                print_records(service.refresh(instance_id, content_type))
        except UnknownInstance as e:
            print(f"[ERROR] {e}")
            sys.exit(1)
        return

    if cmd == "forget":
        if len(sys.argv) < 3:
            usage()
            sys.exit(1)
        removed = service.forget_instance(sys.argv[2])
        print(f"Removed {removed} cached record(s)")
        return

    if cmd != "serve":
        print(f"[ERROR] Unknown command: {cmd}")
        usage()
        sys.exit(1)

    scheduler = ContentScheduler(service)
    scheduler.start_scheduler(cfg.get("refresh_interval_hours", 6))
    app = create_app(cfg, service=service)
    try:
        log.info(f"[BOOT] API listening on port {cfg['http_port']}")
        app.run(host="0.0.0.0", port=cfg["http_port"], debug=False, use_reloader=False)
    finally:
        scheduler.stop_scheduler()
        log.info("[SHUTDOWN] modsync stopped")


if __name__ == "__main__":
    main()
