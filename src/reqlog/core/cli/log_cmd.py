"""reqlog log — create, append to, list, view, search, and delete request logs."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import click
from pydantic import BaseModel, ValidationError

from reqlog.core.exceptions import InvalidInputError, NotFoundError, describe_validation_error
from reqlog.docs.models import DocMeta, Item, ItemDraft
from reqlog.docs.schema import AppendInput, CreateInput
from reqlog.docs.search import parse_match_mode, search_documents
from reqlog.docs.serializer import serialize

from . import formatters
from .common import build_store, domain_errors, read_structured_input, resolve_directory

SORT_FIELDS = ("name", "date", "items")


def _format_option(choices=formatters.FORMATS):
    return click.option(
        "--format",
        "fmt",
        type=click.Choice(choices),
        default="human",
        show_default=True,
        help="Output format.",
    )


def _validate(model: type[BaseModel], data: object, what: str):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid {what} input: {describe_validation_error(e)}") from e


def _drafts_from(data: object) -> list[ItemDraft]:
    """Accept one draft, a list of drafts, or a mapping with ``items``."""
    if not (isinstance(data, dict) and "items" in data):
        data = {"items": data}
    payload = _validate(AppendInput, data, "append")
    return [ItemDraft.from_input(entry) for entry in payload.items]


def _sort_metas(metas: list[DocMeta], field: str, reverse: bool) -> list[DocMeta]:
    """Date sorts newest first, name and items ascending; ``reverse`` flips either."""
    if field == "name":
        return sorted(metas, key=lambda m: m.doc_id, reverse=reverse)
    if field == "items":
        return sorted(metas, key=lambda m: m.item_count, reverse=reverse)
    return sorted(metas, key=lambda m: m.updated_at.timestamp(), reverse=not reverse)


def _filter_items(items: list[Item], item_type: str | None, status: str | None, tag: str | None) -> list[Item]:
    """Keep items matching every given filter exactly, ignoring case."""

    def same(a: str, b: str) -> bool:
        return a.casefold() == b.casefold()

    return [
        item
        for item in items
        if (not item_type or same(item.type, item_type))
        and (not status or same(item.status, status))
        and (not tag or any(same(t, tag) for t in item.tags))
    ]


@click.group()
def log() -> None:
    """Work with request-log documents."""


@log.command()
@click.argument("input_file", type=click.File("r", encoding="utf-8"))
@click.option("--output", "output_dir", default=None, help="Directory for the new document.")
@_format_option()
@click.pass_obj
def create(config, input_file, output_dir: str | None, fmt: str) -> None:
    """Create a request log from a JSON/YAML file (use - for stdin).

    The input holds ``project``, an optional ``title`` and a list of ``items``.
    """
    with domain_errors():
        payload = _validate(CreateInput, read_structured_input(input_file), "create")
        drafts = [ItemDraft.from_input(entry) for entry in payload.items]

        store = build_store(config)
        directory = resolve_directory(config, output_dir, payload.project)
        if not store.is_writable(directory):
            raise InvalidInputError(f"Path is not writable: {directory}")
        path, doc = store.create(directory, payload.project, drafts, title=payload.title)

    if fmt == "human":
        click.echo(f"Created {doc.doc_id} with {doc.item_count} item(s): {path}")
    else:
        click.echo(formatters.dump({"path": str(path), **formatters.document_to_dict(doc)}, fmt))


@log.command()
@click.argument("doc_path")
@click.argument("input_file", type=click.File("r", encoding="utf-8"))
@_format_option()
@click.pass_obj
def append(config, doc_path: str, input_file, fmt: str) -> None:
    """Append items from a JSON/YAML file (use - for stdin) to DOC_PATH.

    All items are written together: if any of them cannot be added (for
    example past item 99) the document is left untouched. The .bak copy holds
    the document as it was before the command.
    """
    with domain_errors():
        drafts = _drafts_from(read_structured_input(input_file))
        doc = build_store(config).extend(doc_path, drafts)

    if fmt == "human":
        added = ", ".join(item.id for item in doc.items[-len(drafts) :])
        click.echo(f"Appended {added} to {doc.doc_id} ({doc.item_count} items)")
    else:
        click.echo(formatters.dump(formatters.document_to_dict(doc), fmt))


@log.command(name="list")
@click.argument("directory", required=False)
@click.option("--project", default=None, help="List the project's configured directory.")
@click.option("--sort", "sort_field", type=click.Choice(SORT_FIELDS), default="date", show_default=True)
@click.option("--reverse", is_flag=True, help="Reverse the sort order.")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Show at most N documents.")
@_format_option(formatters.TABLE_FORMATS)
@click.pass_obj
def list_docs(
    config, directory: str | None, project: str | None, sort_field: str, reverse: bool, limit, fmt: str
) -> None:
    """List request logs in DIRECTORY, newest first by default."""
    with domain_errors():
        directory = resolve_directory(config, directory, project)
        metas = build_store(config).list(directory)

    metas = _sort_metas(metas, sort_field, reverse)
    if limit is not None:
        metas = metas[:limit]

    if fmt == "human":
        click.echo(formatters.human_metas(metas))
    elif fmt == "csv":
        click.echo(formatters.metas_csv(metas))
    else:
        click.echo(formatters.dump([formatters.meta_to_dict(m) for m in metas], fmt))


@log.command()
@click.argument("doc_path")
@_format_option((*formatters.FORMATS, "markdown", "rich"))
@click.option("--items-only", is_flag=True, help="Show only the items, without document metadata.")
@click.option("--filter-type", default=None, help="Show only items of this type.")
@click.option("--filter-status", default=None, help="Show only items with this status.")
@click.option("--filter-tag", default=None, help="Show only items carrying this tag.")
@click.pass_obj
def view(
    config,
    doc_path: str,
    fmt: str,
    items_only: bool,
    filter_type: str | None,
    filter_status: str | None,
    filter_tag: str | None,
) -> None:
    """Show one request log.

    Filters compare case-insensitively and combine with AND. A filtered
    document reports tags and counts for the remaining items only.
    """
    with domain_errors():
        doc = build_store(config).read(doc_path)

    if filter_type or filter_status or filter_tag:
        doc = replace(doc, items=_filter_items(doc.items, filter_type, filter_status, filter_tag))

    if items_only:
        if fmt == "human":
            click.echo(formatters.human_items(doc.items))
        elif fmt in ("markdown", "rich"):
            click.echo(formatters.markdown_body(doc))
        else:
            click.echo(formatters.dump([formatters.item_to_dict(item) for item in doc.items], fmt))
    elif fmt == "human":
        click.echo(formatters.human_document(doc))
    elif fmt == "markdown":
        click.echo(serialize(doc), nl=False)
    elif fmt == "rich":
        formatters.rich_document(doc)
    else:
        click.echo(formatters.dump(formatters.document_to_dict(doc), fmt))


@log.command()
@click.argument("query")
@click.argument("directory", required=False)
@click.option("--project", default=None, help="Search the project's configured directory.")
@click.option("--match", "match_mode", type=click.Choice(["full", "starts", "contains"]), default=None)
@click.option("--limit", type=click.IntRange(min=0), default=None, help="Maximum matches (0 = unlimited).")
@_format_option(formatters.TABLE_FORMATS)
@click.pass_obj
def search(config, query: str, directory: str | None, project: str | None, match_mode, limit, fmt: str) -> None:
    """Search items in DIRECTORY.

    QUERY combines plain words (title/notes) with tag:, type: and status:
    filters; every term must match.
    """
    with domain_errors():
        options = config.search_options()
        if match_mode:
            options = replace(options, match_mode=parse_match_mode(match_mode))
        if limit is not None:
            options = replace(options, limit=limit)

        directory = resolve_directory(config, directory, project)
        docs = build_store(config).load_all(directory)
        matches = search_documents(docs, query, options)

    if fmt == "human":
        click.echo(formatters.human_matches(matches))
    elif fmt == "csv":
        click.echo(formatters.matches_csv(matches))
    else:
        click.echo(formatters.dump([formatters.match_to_dict(m) for m in matches], fmt))


@log.command()
@click.argument("doc_path")
@click.option("--no-backup", is_flag=True, help="Delete without keeping a .bak copy.")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def delete(config, doc_path: str, no_backup: bool, yes: bool) -> None:
    """Delete a request log, keeping a backup unless --no-backup."""
    store = build_store(config)
    with domain_errors():
        doc = store.read(doc_path)
        target: Path = store.resolve(doc_path)

        if not yes:
            click.confirm(f"Delete {doc.doc_id} ({doc.item_count} items) at {target}?", abort=True)

        backup = None if no_backup else store.backup(target)
        try:
            target.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"Document not found: {target}", target) from e
        except OSError as e:
            raise click.ClickException(f"Failed to delete {target}: {e}") from e

    click.echo(f"Deleted {target}" + (f" (backup: {backup})" if backup else ""))
