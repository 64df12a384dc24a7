"""
CLI Module

Architectural Intent:
- Command-line interface for webfleet
- Entry point for all user interactions
- Delegates to application use cases via composition root
- Supports --verbose/--debug/--json-logs flags for log control

Commands:
- plan: preview the resource changes of apply
- apply: converge the environment and configure the managed nodes
- destroy: tear the environment down
- history: list past configuration runs
"""

import argparse
import asyncio
import logging
import sys
import traceback
from typing import Optional, Sequence

from webfleet.application.blueprint import build_blueprint
from webfleet.application.orchestration.dag_orchestrator import OrchestrationError
from webfleet.composition_root import create_container
from webfleet.domain.errors import ConfigurationError, WebfleetError
from webfleet.infrastructure.config import load_config
from webfleet.infrastructure.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webfleet",
        description="Provision an AWS web fleet and configure it with Ansible",
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to JSON config (default: webfleet.json)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit log lines as JSON"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("plan", help="Show the changes apply would make")

    apply_parser = subparsers.add_parser(
        "apply", help="Create or update the environment and configure it"
    )
    apply_parser.add_argument(
        "--force",
        action="store_true",
        help="Re-run configuration even if the managed nodes did not change",
    )

    destroy_parser = subparsers.add_parser("destroy", help="Delete the environment")
    destroy_parser.add_argument(
        "--yes", "-y", action="store_true", help="Do not ask for confirmation"
    )

    history_parser = subparsers.add_parser(
        "history", help="Show recent configuration runs"
    )
    history_parser.add_argument(
        "--limit", "-n", type=int, default=10, help="Number of runs to show"
    )
    return parser


def _log_level(args: argparse.Namespace, configured: str) -> int:
    if args.debug:
        return logging.DEBUG
    if args.verbose:
        return logging.INFO
    return getattr(logging, configured, logging.WARNING)


async def _plan(container) -> None:
    blueprint = build_blueprint(container.config)
    print(f"[*] Planning environment {blueprint.name}...")
    plan = await container.plan.execute(blueprint)
    for change in plan.changes:
        print(f"  {change}")
    print(f"[*] {plan.summary()}")
    if plan.reconfigure:
        print("[*] Managed nodes will be (re)configured.")
    else:
        print("[*] Managed nodes unchanged, configuration will be skipped.")
    print("[*] Inventory preview:")
    for line in plan.inventory_preview.splitlines():
        print(f"    {line}")


async def _apply(container, force: bool) -> None:
    container.config.require_credentials()
    blueprint = build_blueprint(container.config)
    print(f"[*] Applying environment {blueprint.name}...")
    result = await container.apply.execute(blueprint, force=force)

    print(f"[+] Network {result.vpc_id} ready.")
    print(f"[+] Control node: {result.control_address}")
    for address in result.managed_addresses:
        print(f"[+] Web server: http://{address}/")
    print(f"[*] Inventory written to {result.inventory_path}")
    if result.configuration_status == "skipped":
        print("[*] Managed nodes unchanged, configuration skipped.")
    else:
        print(
            f"[+] Configuration {result.configuration_status} "
            f"({len(result.completed_steps)} steps)."
        )
    if result.verification_problems:
        for problem in result.verification_problems:
            print(f"[-] Status page: {problem}")
    elif result.verified:
        print("[+] Status pages verified.")


async def _destroy(container, assume_yes: bool) -> None:
    env = container.config.environment.name
    if not assume_yes:
        answer = input(f"Destroy every resource of {env}? Type the environment name: ")
        if answer.strip() != env:
            print("[*] Destroy cancelled.")
            return
    print(f"[*] Destroying environment {env}...")
    result = await container.destroy.execute(env)
    print(f"[+] Deleted {len(result.deleted_ids)} resource(s).")


def _history(container, limit: int) -> None:
    env = container.config.environment.name
    runs = container.state_store.get_configuration_runs(env, limit=limit)
    if not runs:
        print(f"[*] No configuration runs recorded for {env}.")
        return
    for run in runs:
        line = (
            f"  {run['recorded_at']}  {run['status']:<8} "
            f"{run['fingerprint'][:12]}  {run['host_count']} host(s)"
        )
        if run.get("error_message"):
            line += f"  {run['error_message']}"
        print(line)


async def async_main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    verbose = args.verbose or args.debug
    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"[-] Invalid configuration: {e}")
        sys.exit(1)

    configure_logging(level=_log_level(args, config.log_level), json_format=args.json_logs)

    container = None
    try:
        container = create_container(config)
        if args.command == "plan":
            await _plan(container)
        elif args.command == "apply":
            await _apply(container, args.force)
        elif args.command == "destroy":
            await _destroy(container, args.yes)
        elif args.command == "history":
            _history(container, args.limit)
    except OrchestrationError as e:
        cause = e.__cause__ if e.__cause__ is not None else e
        print(f"[-] Apply failed at step '{e.step}': {cause}")
        if verbose:
            traceback.print_exc()
        sys.exit(1)
    except (WebfleetError, ValueError) as e:
        print(f"[-] {args.command.capitalize()} failed: {e}")
        if verbose:
            traceback.print_exc()
        sys.exit(1)
    finally:
        if container is not None:
            container.close()


def main(argv: Optional[Sequence[str]] = None) -> None:
    asyncio.run(async_main(argv))


if __name__ == "__main__":
    main()
