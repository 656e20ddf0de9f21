# main.py

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from intelligroup import __version__
from intelligroup.config import get_config
from intelligroup.exceptions import IntelliGroupError
from intelligroup.exporters import CsvExporter, PdfExporter, STATUS_DRAFT, STATUS_VERIFIED
from intelligroup.logger import setup_logger
from intelligroup.models import usable
from intelligroup.persistence import JSONStore
from intelligroup.pipeline import GroupingPipeline
from intelligroup.progress import get_progress
from intelligroup.utils import format_duration

console = Console()


def _store(args) -> JSONStore:
    workspace = Path(args.workspace) if args.workspace else get_config().workspace_dir
    return JSONStore(workspace)


def cmd_process(args) -> int:
    config = get_config()
    store = _store(args)
    pipeline = GroupingPipeline(config)
    progress = get_progress(console)

    with progress:
        task = progress.add_task("Reading files", total=None)

        def on_progress(current, total, status):
            if total:
                progress.update(task, completed=current, total=total, description=status)
            else:
                progress.update(task, description=status)

        result = pipeline.process_files([Path(f) for f in args.files], on_progress=on_progress)

    if args.replace:
        documents = result.documents
        store.save(documents)
    else:
        documents = store.merge_run(result.documents)
    stats_path = store.save_stats(result.stats)

    console.print(
        f"Grouped {result.stats.pages_processed} page(s) into {len(result.documents)} document(s) "
        f"in {format_duration(result.stats.total_time_sec)}; workspace now holds {len(documents)}."
    )
    console.print(f"Stats: {stats_path}")

    if result.aborted:
        console.print(f"[bold red]Run aborted:[/bold red] {result.error.message}")
        console.print("Documents grouped before the failure were saved. Update the API key and re-run.")
        return 2
    return 0


def cmd_list(args) -> int:
    documents = _store(args).load()
    if not documents:
        console.print("No documents.")
        return 0

    table = Table(title=f"{len(documents)} document(s)")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("SNILS")
    table.add_column("Pages", justify="right")
    table.add_column("Status")

    for doc in documents:
        status = STATUS_VERIFIED if doc.is_verified else STATUS_DRAFT
        table.add_row(doc.id[:8], doc.name, usable(doc.snils) or "-", str(len(doc.pages)), status)

    console.print(table)
    return 0


def cmd_verify(args) -> int:
    doc = _store(args).mark_verified(args.doc_id, verified=not args.undo)
    console.print(f"{doc.name}: {STATUS_VERIFIED if doc.is_verified else STATUS_DRAFT}")
    return 0


def cmd_delete(args) -> int:
    doc = _store(args).delete_document(args.doc_id)
    console.print(f"Deleted {doc.name} ({len(doc.pages)} page(s))")
    return 0


def cmd_edit(args) -> int:
    changes = {}
    for item in args.changes:
        field, sep, value = item.partition("=")
        if not sep:
            console.print(f"[bold red]Expected FIELD=VALUE, got {item!r}[/bold red]")
            return 1
        changes[field.strip()] = value

    doc = _store(args).update_fields(args.doc_id, changes)
    console.print(f"Updated {doc.name}")
    return 0


def cmd_export_csv(args) -> int:
    config = get_config()
    documents = _store(args).load()
    output = Path(args.output) if args.output else config.output_dir / "registry.csv"
    path = CsvExporter(delimiter=config.export.csv_delimiter).export(documents, output)
    console.print(f"CSV written to {path}")
    return 0


def cmd_export_pdf(args) -> int:
    config = get_config()
    documents = _store(args).load()
    if args.verified_only:
        documents = [d for d in documents if d.is_verified]
    out_dir = Path(args.output_dir) if args.output_dir else config.output_dir / "pdf"
    paths = PdfExporter(page_width_pt=config.export.pdf_page_width_pt).export(documents, out_dir)
    console.print(f"{len(paths)} PDF(s) written to {out_dir}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="IntelliGroup ballot grouping")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--workspace", help="Directory holding the persisted document set")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("process", help="Extract, recognize and group scanned ballots")
    p.add_argument("files", nargs="+", help="PDF/image files or directories, in scan order")
    p.add_argument("--replace", action="store_true", help="Replace the workspace instead of merging into it")
    p.set_defaults(func=cmd_process)

    p = sub.add_parser("list", help="List grouped documents")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("verify", help="Mark a document as checked by the operator")
    p.add_argument("doc_id", help="Document id or unique id prefix")
    p.add_argument("--undo", action="store_true", help="Return the document to draft")
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("delete", help="Delete a document")
    p.add_argument("doc_id", help="Document id or unique id prefix")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("edit", help="Correct fields of a document")
    p.add_argument("doc_id", help="Document id or unique id prefix")
    p.add_argument("changes", nargs="+", metavar="FIELD=VALUE", help="e.g. lastName=Ivanov votes.2=ЗА")
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("export-csv", help="Write the CSV registry")
    p.add_argument("--output", help="CSV path (default: OUTPUT_DIR/registry.csv)")
    p.set_defaults(func=cmd_export_csv)

    p = sub.add_parser("export-pdf", help="Write one PDF per document")
    p.add_argument("--output-dir", help="Directory (default: OUTPUT_DIR/pdf)")
    p.add_argument("--verified-only", action="store_true", help="Only export verified documents")
    p.set_defaults(func=cmd_export_pdf)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logger()

    try:
        return args.func(args)
    except KeyError as e:
        console.print(f"[bold red]{e.args[0]}[/bold red]")
        return 1
    except IntelliGroupError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
