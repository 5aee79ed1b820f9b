#!/usr/bin/env python3
"""
Gear Catalog CLI.

Command-line interface for master component catalog maintenance:
- find-duplicates: Report groups of likely-duplicate master components
- merge: Fold duplicates into a primary component (rewrites user equipment)
- ignore: Mark a duplicate group as not duplicates
- seed: Seed master components from a JSON reference file
- list-components: List master components (optionally by type)
- remove-embeddings: Strip embedding vectors from the catalog

Usage:
    python cli.py find-duplicates --output report.json
    python cli.py merge --primary sram-gx-eagle-xg-1275 -m sram-xg-1275 --apply
    python cli.py ignore "Fork|RockShox|Lyrik|no-size"
    python cli.py seed saddles.json --id-fields sized
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Optional

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import click

from gear_catalog.catalog.cleanup import remove_all_embeddings
from gear_catalog.catalog.identity import ID_FIELD_PROFILES
from gear_catalog.catalog.reader import (
    fetch_all_master_components,
    fetch_master_components_by_type,
)
from gear_catalog.catalog.seeder import seed_master_components
from gear_catalog.duplicates.finder import DuplicateScanError, find_duplicate_groups
from gear_catalog.duplicates.ignore import ignore_group
from gear_catalog.duplicates.merge import merge_duplicates
from gear_catalog.store import get_store


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def _report(result, success_hint: Optional[str] = None) -> None:
    """Print an OperationResult and exit 1 on failure."""
    if result.success:
        click.echo(click.style(f"✓ {result.message}", fg="green"))
        if success_hint:
            click.echo(success_hint)
    else:
        click.echo(click.style(f"✗ {result.message}", fg="red"), err=True)
        sys.exit(1)


@click.group()
def cli():
    """Gear Catalog CLI - Master component maintenance."""
    pass


# =============================================================================
# FIND DUPLICATES
# =============================================================================

@cli.command("find-duplicates")
@click.option("--output", type=click.Path(dir_okay=False), help="Write full JSON report to this file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def find_duplicates_cmd(output: Optional[str], verbose: bool):
    """
    Scan master components for likely duplicates.

    Groups by name | brand | base model | size. Groups marked with
    `ignore` are not reported.

    Examples:
        python cli.py find-duplicates
        python cli.py find-duplicates --output report.json
    """
    _configure_logging(verbose)

    try:
        groups = find_duplicate_groups(get_store())
    except DuplicateScanError as e:
        click.echo(click.style(f"✗ {e}", fg="red"), err=True)
        sys.exit(1)

    if not groups:
        click.echo("No duplicate groups found.")
    else:
        click.echo(f"Found {len(groups)} duplicate groups "
                   f"({sum(len(g.components) for g in groups)} components)")
        for group in groups:
            click.echo(f"\n  {' - '.join(group.key.split('|'))}")
            click.echo(f"    key: {group.key}")
            for component in group.components:
                click.echo(f"    {component.id}: {component.brand or ''} {component.model or ''}"
                           f" [{component.size or 'no size'}]")

    if output:
        report = {
            "duplicate_groups": len(groups),
            "groups": [g.to_dict() for g in groups],
        }
        with open(output, "w") as f:
            json.dump(report, f, indent=2, default=str)
        click.echo(f"\nFull report written to: {output}")


# =============================================================================
# MERGE
# =============================================================================

@cli.command("merge")
@click.option("--primary", "-p", required=True, help="Master component ID to keep")
@click.option("--merge-id", "-m", "merge_ids", multiple=True, required=True,
              help="Master component ID to merge into the primary (repeatable)")
@click.option("--dry-run/--apply", default=True, help="Dry-run mode (default: True)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def merge_cmd(primary: str, merge_ids: tuple, dry_run: bool, verbose: bool):
    """
    Merge duplicate master components into a primary component.

    Rewrites every user's equipment to reference the primary, then deletes
    the merged master components, in one atomic batch.

    Examples:
        python cli.py merge -p shimano-rd-m8100 -m shimano-rd-m8100-sgs
        python cli.py merge -p shimano-rd-m8100 -m shimano-rd-m8100-sgs --apply
    """
    _configure_logging(verbose)

    result = merge_duplicates(primary, list(merge_ids), store=get_store(), dry_run=dry_run)
    hint = None
    if result.success:
        click.echo(f"  Equipment updated:    {result.equipment_updated}")
        click.echo(f"  References rewritten: {result.components_rewritten}")
        click.echo(f"  Masters deleted:      {', '.join(result.deleted_ids) or '-'}")
        if dry_run:
            hint = click.style("\nDry-run mode: No changes applied", fg="yellow")
            hint += "\n  Run with --apply to merge"
    _report(result, hint)


# =============================================================================
# IGNORE
# =============================================================================

@cli.command("ignore")
@click.argument("key")
def ignore_cmd(key: str):
    """
    Mark a duplicate group KEY as not duplicates.

    KEY is the "key:" line printed by find-duplicates (name|brand|model|size).

    Example:
        python cli.py ignore "Rear Derailleur|Shimano|RD-M8100|no-size"
    """
    _configure_logging(False)
    _report(ignore_group(key, store=get_store()))


# =============================================================================
# SEED
# =============================================================================

@cli.command("seed")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--id-fields", default="base",
              help=f"ID profile ({', '.join(sorted(ID_FIELD_PROFILES))}) "
                   "or comma-separated field names")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def seed_cmd(path: str, id_fields: str, verbose: bool):
    """
    Seed master components from a JSON file containing a list of components.

    Examples:
        python cli.py seed base_components.json
        python cli.py seed saddles.json --id-fields sized
        python cli.py seed cassettes.json --id-fields brand,series,name,model
    """
    _configure_logging(verbose)

    with open(path) as f:
        components = json.load(f)
    if not isinstance(components, list):
        click.echo(click.style("✗ Seed file must contain a JSON list", fg="red"), err=True)
        sys.exit(1)

    fields = id_fields if id_fields in ID_FIELD_PROFILES else [
        f.strip() for f in id_fields.split(",") if f.strip()
    ]
    result = seed_master_components(components, id_fields=fields, store=get_store())
    if result.success:
        click.echo(f"  Skipped (no identity): {result.details.get('skipped', 0)}")
    _report(result)


# =============================================================================
# LIST COMPONENTS
# =============================================================================

@cli.command("list-components")
@click.option("--type", "type_name", help="Only components of this type (e.g. Fork)")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def list_components_cmd(type_name: Optional[str], as_json: bool):
    """List master components."""
    store = get_store()
    if type_name:
        components = fetch_master_components_by_type(type_name, store=store)
    else:
        components = fetch_all_master_components(store=store)

    if as_json:
        click.echo(json.dumps([c.summary() for c in components], indent=2, default=str))
        return

    for c in sorted(components, key=lambda c: c.id):
        click.echo(f"  {c.id:<48} {c.name:<16} {c.system or '-'}")
    click.echo(f"\n{len(components)} components")


# =============================================================================
# REMOVE EMBEDDINGS
# =============================================================================

@cli.command("remove-embeddings")
@click.option("--dry-run/--apply", default=True, help="Dry-run mode (default: True)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def remove_embeddings_cmd(dry_run: bool, verbose: bool):
    """Remove the embedding field from every master component."""
    _configure_logging(verbose)

    result = remove_all_embeddings(store=get_store(), dry_run=dry_run)
    hint = None
    if dry_run:
        hint = click.style("\nDry-run mode: No changes applied", fg="yellow")
        hint += "\n  Run with --apply to remove embeddings"
    _report(result, hint)


if __name__ == "__main__":
    cli()
