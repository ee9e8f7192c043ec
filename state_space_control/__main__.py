# state_space_control/__main__.py
"""
Run a configured controller against its simulated plant.

    python -m state_space_control configs/mass_spring_damper.yaml --duration 5
    python -m state_space_control --template my_plant.yaml
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config.loader import ConfigError, ControlConfig, generate_config_template
from .logger.logger import LogBundle


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="state_space_control",
        description="Closed-loop simulation of a state-space controller",
    )
    ap.add_argument("config", nargs="?", help="YAML or JSON control configuration")
    ap.add_argument("--template", metavar="PATH", help="Write a template configuration and exit")
    ap.add_argument("--duration", type=float, default=None, help="Simulated seconds (default: from config)")
    ap.add_argument("--dt", type=float, default=None, help="Control period in seconds (default: from config)")
    ap.add_argument("--log-dir", default="logs", help="Directory for the text log and tick recording")
    ap.add_argument("--record", action="store_true", help="Record every tick to <log-dir>/<name>.jsonl")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging on the console")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    if args.template:
        generate_config_template(args.template)
        print(f"Wrote template: {args.template}")
        return 0

    if not args.config:
        ap.error("a configuration file is required (or use --template)")
    if args.dt is not None and not args.dt > 0:
        ap.error(f"--dt must be positive, got {args.dt}")

    try:
        cfg = ControlConfig.from_file(args.config)
    except (OSError, ConfigError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.dt is not None:
        cfg.dt = args.dt
    duration = args.duration if args.duration is not None else cfg.duration_s

    bundle = LogBundle(
        name=cfg.name,
        log_dir=args.log_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
        console=args.verbose,
        record=args.record,
    )
    try:
        try:
            runner = cfg.create_runner(recorder=bundle.events)
        except ConfigError as e:
            bundle.log.error("%s", e)
            print(f"error: {e}", file=sys.stderr)
            return 2

        bundle.log.info("Loaded %s: %r", cfg.name, cfg.model)
        runner.prime()
        runner.run(duration)

        print(f"{cfg.name}: {len(runner.history)} steps, dt={runner.dt} s")
        for i, m in enumerate(runner.metrics()):
            print(f"  y[{i}]:")
            for key, value in m.to_dict().items():
                print(f"    {key:20s} {value}")
    finally:
        bundle.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
