"""
Scanflow CLI - PDF to Markdown with vision models

Commands:
    scanflow convert <pdf> [--output FILE]     Convert a local PDF (no object storage)
    scanflow worker [--jobs FILE|-]            Process job descriptors (JSON lines)
    scanflow serve [--host H] [--port P]       HTTP endpoint: POST /scan
"""

import argparse
import signal
import sys
import threading
from pathlib import Path

from rich.console import Console
from rich.table import Table

from scanflow.config import load_config
from scanflow.errors import PipelineError
from scanflow.logger import setup_logging

console = Console()


def _build_config(args):
    config = load_config(
        log_level=getattr(args, 'log_level', None),
        concurrency=getattr(args, 'concurrency', None),
        job_attempts=getattr(args, 'attempts', None),
        workspace_root=getattr(args, 'workspace', None),
    )
    setup_logging(config.log_level)
    return config


def cmd_convert(args):
    from scanflow.llm import GenerateClient
    from scanflow.pipeline import PipelineCoordinator

    pdf_path = Path(args.pdf).expanduser()
    if not pdf_path.is_file():
        console.print(f"❌ File not found: {pdf_path}")
        sys.exit(1)

    config = _build_config(args)
    coordinator = PipelineCoordinator(
        config,
        None,
        GenerateClient.from_config(config),
        console_output=args.verbose,
    )

    try:
        document = coordinator.convert_file(pdf_path, job_id=args.job_id)
    except PipelineError as e:
        console.print(f"❌ {e}")
        sys.exit(1)

    output = Path(args.output) if args.output else pdf_path.with_suffix('.md')
    output.write_text(document.markdown, encoding='utf-8')
    console.print(f"✅ {document.page_count} pages → {output}")


def cmd_worker(args):
    from scanflow.llm import GenerateClient
    from scanflow.pipeline import PipelineCoordinator
    from scanflow.storage import LocalObjectStore, S3ObjectStore
    from scanflow.worker import WorkerPool, read_job_descriptors

    config = _build_config(args)
    store = LocalObjectStore(args.local_store) if args.local_store else S3ObjectStore.from_config(config)
    coordinator = PipelineCoordinator(
        config,
        store,
        GenerateClient.from_config(config),
        console_output=args.verbose,
    )

    def report(outcome):
        symbol = {'completed': '✅', 'failed': '❌'}.get(outcome.status, '⏭️ ')
        console.print(f"{symbol} {outcome.job_id} ({outcome.status}, attempts: {outcome.attempts})")

    pool = WorkerPool.from_config(coordinator, config, on_outcome=report).start()

    stop = threading.Event()

    def request_stop(signum, frame):
        console.print(f"\n⚠️  Received {signal.Signals(signum).name}, finishing in-flight jobs...")
        stop.set()

    previous_handlers = {
        signum: signal.signal(signum, request_stop)
        for signum in (signal.SIGINT, signal.SIGTERM)
    }

    try:
        submitted = 0
        stream = sys.stdin if args.jobs == '-' else open(args.jobs, 'r', encoding='utf-8')
        try:
            for job_id, descriptor in read_job_descriptors(stream):
                if stop.is_set():
                    break
                pool.submit(descriptor, job_id=job_id)
                submitted += 1
        finally:
            if stream is not sys.stdin:
                stream.close()

        console.print(f"📥 Queued {submitted} jobs (concurrency {pool.concurrency}, attempts {pool.max_attempts})")

        while not pool.join(timeout=0.5):
            if stop.is_set():
                break
    finally:
        pool.shutdown(wait=True)
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)

    outcomes = pool.drain_outcomes()
    _print_outcomes(outcomes)

    if any(o.status != 'completed' for o in outcomes):
        sys.exit(1)


def _print_outcomes(outcomes):
    if not outcomes:
        console.print("No jobs processed.")
        return

    table = Table(title="Job Outcomes")
    table.add_column("Job", style="cyan")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Pages", justify="right")
    table.add_column("Output / Error")

    styles = {'completed': 'green', 'failed': 'red', 'abandoned': 'yellow'}
    for outcome in outcomes:
        if outcome.result is not None:
            detail = f"s3://{outcome.result.destination['bucket']}/{outcome.result.destination['key']}"
            pages = str(outcome.result.page_count)
        else:
            detail = outcome.error or ""
            pages = "-"
        table.add_row(
            outcome.job_id,
            f"[{styles.get(outcome.status, 'white')}]{outcome.status}[/]",
            str(outcome.attempts),
            pages,
            detail,
        )

    console.print(table)


def cmd_serve(args):
    from scanflow.web.app import create_app

    config = _build_config(args)
    app = create_app(config)

    console.print(f"\n🚀 Scanflow listening on http://{args.host}:{args.port}")
    console.print(f"   POST /scan with a multipart 'file' field\n")
    app.run(host=args.host, port=args.port, debug=args.debug)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='scanflow',
        description='Convert PDFs to Markdown with vision models',
    )
    parser.add_argument('--log-level', help='DEBUG, INFO, WARNING, ERROR (default: LOG_LEVEL or INFO)')
    parser.add_argument('--workspace', help='Workspace root directory (default: WORKSPACE_ROOT)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Print pipeline logs to the console')

    subparsers = parser.add_subparsers(dest='command', required=True)

    convert_parser = subparsers.add_parser('convert', help='Convert a local PDF')
    convert_parser.add_argument('pdf', help='Path to the PDF')
    convert_parser.add_argument('--output', '-o', help='Markdown output file (default: <pdf>.md)')
    convert_parser.add_argument('--job-id', help='Job id (default: local/<file name>)')
    convert_parser.set_defaults(func=cmd_convert)

    worker_parser = subparsers.add_parser('worker', help='Process job descriptors from JSON lines')
    worker_parser.add_argument('--jobs', default='-', help='JSON-lines file of job descriptors (default: stdin)')
    worker_parser.add_argument('--concurrency', type=int, help='Concurrent jobs (default: WORKER_CONCURRENCY or 2)')
    worker_parser.add_argument('--attempts', type=int, help='Delivery attempts per job (default: JOB_ATTEMPTS or 1)')
    worker_parser.add_argument('--local-store', help='Use a local directory as object storage (one subdirectory per bucket)')
    worker_parser.set_defaults(func=cmd_worker)

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP conversion endpoint')
    serve_parser.add_argument('--host', default='127.0.0.1')
    serve_parser.add_argument('--port', type=int, default=3000)
    serve_parser.add_argument('--debug', action='store_true')
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == '__main__':
    main()
