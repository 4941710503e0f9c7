"""Command-line interface for tracking build component costs."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from botparts.config import Settings, load_settings
from botparts.errors import BotPartsError, NotFoundError
from botparts.identity import IdentityProvider
from botparts.ledger import (
    ComponentDraft,
    add_component,
    format_cost,
    remove_component,
    total_cost,
    update_component,
)
from botparts.models import Build, BuildSnapshot
from botparts.repository import BuildRepository
from botparts.selection import SelectionState, resolve_active_build
from botparts.store import open_store


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track component costs for robot builds and events")
    parser.add_argument("--config", type=Path, default=None, help="Settings JSON file")
    parser.add_argument("--db", default=None, help="SQLite database path (overrides settings)")
    parser.add_argument(
        "--user",
        default=os.getenv("BOTPARTS_USER_ID"),
        help="User id owning the builds (default: $BOTPARTS_USER_ID)",
    )
    parser.add_argument("--save-config", type=Path, default=None, help="Write the resolved settings to this path")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("builds", help="List builds with their totals")

    show = sub.add_parser("show", help="Show the components of one build")
    show.add_argument("--build", default=None, help="Build id (default: the default build)")

    event = sub.add_parser("add-event", help="Create a build for a competition event")
    event.add_argument("name", help="Event name, e.g. 'RoboWarz 2025'")

    add = sub.add_parser("add", help="Add a component to a build")
    add.add_argument("name")
    add.add_argument("quantity")
    add.add_argument("price")
    add.add_argument("--build", default=None, help="Build id (default: the default build)")

    edit = sub.add_parser("edit", help="Edit a component; omitted fields keep their value")
    edit.add_argument("component_id")
    edit.add_argument("--name", default=None)
    edit.add_argument("--quantity", default=None)
    edit.add_argument("--price", default=None)
    edit.add_argument("--build", default=None, help="Build id (default: the default build)")

    remove = sub.add_parser("remove", help="Delete a component from a build")
    remove.add_argument("component_id")
    remove.add_argument("--build", default=None, help="Build id (default: the default build)")

    watch = sub.add_parser("watch", help="Print every change to the user's builds")
    watch.add_argument("--count", type=int, default=None, help="Stop after this many updates")

    return parser.parse_args(argv)


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    if args.db:
        settings = Settings.from_mapping({"db_path": args.db, "store": "sqlite"}, settings)
    if args.save_config:
        settings.save(args.save_config)
        print(f"Saved settings to {args.save_config}")
    return settings


def _print_build_table(snapshot: BuildSnapshot, active_id: Optional[str], currency: str) -> None:
    for build in snapshot.builds:
        marker = "*" if build.id == active_id else " "
        label = f"{build.name} (default)" if build.is_default else build.name
        print(
            f"{marker} {build.id}  {label}  "
            f"{len(build.components)} component(s)  {format_cost(total_cost(build.components), currency)}"
        )
    if snapshot.rejected:
        print(f"Unreadable build documents: {', '.join(snapshot.rejected)}")


def _print_build(build: Build, currency: str) -> None:
    print(f"{build.name}{' (default)' if build.is_default else ''}  [{build.id}]")
    if not build.components:
        print("  no components")
    for component in build.components:
        quantity = "-" if component.quantity is None else component.quantity
        print(f"  {component.id}  {component.name}  x{quantity}  {format_cost(component.price, currency)}")
    print(f"  Total: {format_cost(total_cost(build.components), currency)}")


async def _load_snapshot(repository: BuildRepository, user_id: str) -> BuildSnapshot:
    snapshot = await repository.list_builds(user_id)
    if snapshot.is_empty() and not snapshot.rejected:
        await repository.ensure_default_build(user_id)
        snapshot = await repository.list_builds(user_id)
    return snapshot


async def _target_build(repository: BuildRepository, user_id: str, build_id: Optional[str]) -> Build:
    if build_id:
        return await repository.get_build(user_id, build_id)
    selection = SelectionState()
    selection.apply(await _load_snapshot(repository, user_id))
    build = selection.active_build
    if build is None:
        raise NotFoundError("No readable build to edit")
    return build


async def _watch(repository: BuildRepository, user_id: str, count: Optional[int], currency: str) -> None:
    selection = SelectionState()
    seen = 0
    async with repository.subscribe(user_id) as subscription:
        async for snapshot in subscription:
            selection.apply(snapshot)
            seen += 1
            print(f"-- update {seen}: {len(snapshot.builds)} build(s)")
            _print_build_table(snapshot, selection.active_build_id, currency)
            if count is not None and seen >= count:
                break


async def _run(args: argparse.Namespace, settings: Settings) -> None:
    provider = IdentityProvider()
    if args.user:
        await provider.sign_in(args.user)
    user_id = provider.current.require_user_id()

    currency = settings.currency_symbol
    async with open_store(settings) as store:
        repository = BuildRepository(
            store,
            app_id=settings.app_id,
            default_build_name=settings.default_build_name,
        )
        if args.command == "builds":
            snapshot = await _load_snapshot(repository, user_id)
            _print_build_table(snapshot, resolve_active_build(None, snapshot), currency)
        elif args.command == "show":
            _print_build(await _target_build(repository, user_id, args.build), currency)
        elif args.command == "add-event":
            await _load_snapshot(repository, user_id)
            build = await repository.create_build(user_id, args.name)
            print(f"Created build {build.id} ({build.name})")
        elif args.command == "add":
            build = await _target_build(repository, user_id, args.build)
            components = add_component(build.components, ComponentDraft(args.name, args.quantity, args.price))
            await repository.replace_components(user_id, build.id, components)
            print(f"Added {components[-1].id} to {build.name}")
            _print_build(build.model_copy(update={"components": components}), currency)
        elif args.command == "edit":
            build = await _target_build(repository, user_id, args.build)
            current = next((c for c in build.components if c.id == args.component_id), None)
            draft = ComponentDraft(
                name=args.name if args.name is not None else (current.name if current else None),
                quantity=args.quantity if args.quantity is not None else (current.quantity if current else None),
                price=args.price if args.price is not None else (current.price if current else None),
                id=args.component_id,
            )
            components = update_component(build.components, draft)
            await repository.replace_components(user_id, build.id, components)
            _print_build(build.model_copy(update={"components": components}), currency)
        elif args.command == "remove":
            build = await _target_build(repository, user_id, args.build)
            components = remove_component(build.components, args.component_id)
            if len(components) == len(build.components):
                print(f"Component {args.component_id} is not in {build.name}; nothing deleted")
            else:
                await repository.replace_components(user_id, build.id, components)
                print(f"Deleted {args.component_id} from {build.name}")
        elif args.command == "watch":
            await _watch(repository, user_id, args.count, currency)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        settings = _resolve_settings(args)
    except (OSError, ValueError) as exc:
        print(f"error: invalid settings: {exc}", file=sys.stderr)
        return 2
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(_run(args, settings))
    except BotPartsError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
