"""CLI interface for pys3sync."""

import logging
from typing import Any, Optional

import click

from . import __version__
from .api import S3Client, validate_region
from .config import config
from .exceptions import ConfigurationError, ListingError, SchedulerError
from .output import OutputFormatter
from .sync import Concurrency, JobRunner, SyncPair, Syncer
from .utils import DEFAULT_PAGE_LIMIT

logger = logging.getLogger(__name__)

# Exit code for configuration, listing and scheduler errors
EXIT_FATAL = 2


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__, prog_name="pys3sync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """pys3sync - Mirror local directories to and from S3 buckets."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pys3sync").setLevel(logging.DEBUG)
        # boto is very chatty at debug level
        for name in ("boto3", "botocore", "s3transfer", "urllib3"):
            logging.getLogger(name).setLevel(logging.INFO)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


def _fatal(ctx: Any, out: OutputFormatter, message: str) -> None:
    out.error(message)
    ctx.exit(EXIT_FATAL)


@main.command()
@click.argument("source")
@click.argument("target")
@click.option(
    "--concurrent",
    "-c",
    type=int,
    default=None,
    help="Number of concurrent transfers (default: 20, 0 or less for no limit)",
)
@click.option(
    "--retries",
    "-n",
    type=int,
    default=None,
    help="Attempts per file before giving up (default: 3)",
)
@click.option(
    "--full",
    "-f",
    is_flag=True,
    help="Delete existing files/keys in TARGET which do not appear in SOURCE",
)
@click.option("--region", "-r", default=None, help="AWS region (default: us-east-1)")
@click.option(
    "--access-key", "-a", default=None, help="AWS access key (default: from env)"
)
@click.option(
    "--secret-key", "-s", default=None, help="AWS secret key (default: from env)"
)
@click.option(
    "--endpoint-url",
    default=None,
    help="Endpoint of an S3-compatible store (skips region validation)",
)
@click.option(
    "--page-size",
    type=int,
    default=DEFAULT_PAGE_LIMIT,
    show_default=True,
    help="Keys requested per listing page",
)
@click.pass_context
def sync(
    ctx: Any,
    source: str,
    target: str,
    concurrent: Optional[int],
    retries: Optional[int],
    full: bool,
    region: Optional[str],
    access_key: Optional[str],
    secret_key: Optional[str],
    endpoint_url: Optional[str],
    page_size: int,
) -> None:
    """Sync files between a local directory and an S3 bucket.

    Exactly one of SOURCE and TARGET must be an S3 path
    (s3://bucket/prefix). SOURCE may end in a single wildcard to
    restrict the sync to matching files.

    Examples:
        pys3sync sync ./photos s3://my-bucket/photos
        pys3sync sync "./data/*.json" s3://my-bucket/data --full
        pys3sync sync s3://my-bucket/logs ./logs -c 50
    """
    out: OutputFormatter = ctx.obj["out"]

    out.info(f"Setting source to '{source}'")
    out.info(f"Setting target to '{target}'")

    if concurrent is None:
        concurrent = config.concurrency
    if retries is None:
        retries = config.retries
    if retries < 1:
        _fatal(ctx, out, "Retries must be at least 1")
    if page_size < 1:
        _fatal(ctx, out, "Page size must be at least 1")

    try:
        pair = SyncPair.parse(source, target)
        region = region or config.region
        endpoint_url = endpoint_url or config.endpoint_url
        if not endpoint_url:
            validate_region(region)
        client = S3Client(
            bucket=pair.bucket,
            region=region,
            access_key=access_key,
            secret_key=secret_key,
            endpoint_url=endpoint_url,
        )
        client.check_credentials()
    except ConfigurationError as e:
        _fatal(ctx, out, str(e))
        return  # Unreachable, but helps type checker

    if full:
        out.warning("Doing a full sync! You've been warned.")

    concurrency = Concurrency.from_limit(concurrent)
    logger.debug(f"Concurrency: {concurrency}, attempts per job: {retries}")

    syncer = Syncer(
        client,
        pair,
        JobRunner(concurrency),
        output=out,
        full_sync=full,
        max_attempts=retries,
        page_limit=page_size,
    )

    try:
        stats = syncer.run()
    except (ConfigurationError, ListingError, SchedulerError) as e:
        _fatal(ctx, out, str(e))
        return

    if out.json_output:
        out.output_json(stats)
    else:
        syncer.display_summary(stats)


if __name__ == "__main__":
    main()
