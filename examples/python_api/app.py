from __future__ import annotations

import argparse
from pathlib import Path

from bitbucket_provisioner.config import apply, drift, load, plan


def _progress(change: object, event: str) -> None:
    address = getattr(change, "address", "unknown")
    print(f"[{event:5}] {address}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Plan/apply Bitbucket deployment variables via the Python API"
    )
    parser.add_argument(
        "--config", default="bitbucket-provisioner.yaml", help="Path to config file"
    )
    parser.add_argument("--apply", action="store_true", help="Apply the generated plan")
    parser.add_argument("--drift", action="store_true", help="Only report drift and exit")
    args = parser.parse_args()

    config = load(Path(args.config))

    if args.drift:
        for change in drift(config):
            print(f"drift: {change.action.value:6} {change.address}")
        return

    plan_obj = plan(config)
    print("Plan summary:", plan_obj.summary())
    for change in plan_obj.changes:
        print(f"- {change.action.value:6} {change.address}")

    if args.apply:
        result = apply(plan_obj, config, progress=_progress)
        print("Apply summary:", result.summary())


if __name__ == "__main__":
    main()
