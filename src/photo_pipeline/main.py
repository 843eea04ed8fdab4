"""Main module for the photo pipeline CLI."""

import sys
import argparse
import json
from typing import List, Optional, Tuple

from .core import PipelineConfig, PhotoPipelineError, load_config
from .core.factories import AWSClientFactory, LoggerFactory
from .core.models import METADATA_FIELDS
from .core.publishing import publish_metadata
from .pipeline import PipelineFactory


def parse_metadata_spec(text: str) -> Tuple[str, str, str]:
    """Split ``IMAGE:FIELD:VALUE``; the value may itself contain colons."""
    parts = text.split(":", 2)
    if len(parts) != 3 or not all(parts[:2]):
        raise argparse.ArgumentTypeError(
            f"Metadata must look like IMAGE:FIELD:VALUE, got {text!r}"
        )
    return parts[0], parts[1], parts[2]


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="photo-pipeline",
        description="Photo Album - image upload validation, cataloging and metadata",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the pipeline locally against in-memory AWS fakes
  photo-pipeline simulate --bucket images --key vacation.png --key notes.txt \\
                          --metadata vacation.png:Date:2023-05-01

  # Tag a cataloged image through the deployed metadata topic
  photo-pipeline publish-metadata --topic-arn arn:aws:sns:... \\
                                  --image vacation.png --type Caption --value "At the beach"

  # Show version
  photo-pipeline version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    simulate_parser: argparse.ArgumentParser = subparsers.add_parser(
        "simulate", help="Run uploads and metadata through a local in-memory pipeline"
    )
    simulate_parser.add_argument("--bucket", default="images", help="Bucket to upload into")
    simulate_parser.add_argument(
        "--key", action="append", default=[], dest="keys", help="Object key to upload (repeatable)"
    )
    simulate_parser.add_argument(
        "--metadata",
        action="append",
        default=[],
        type=parse_metadata_spec,
        help="Metadata to publish after the uploads, as IMAGE:FIELD:VALUE (repeatable)",
    )
    simulate_parser.add_argument(
        "--max-receive-count", type=int, default=3, help="Attempts before dead-lettering"
    )
    simulate_parser.add_argument(
        "--batch-size", type=int, default=5, help="Messages per consumer batch"
    )
    simulate_parser.add_argument(
        "--batching-window",
        type=float,
        default=0.0,
        help="Seconds a consumer waits to fill a batch",
    )

    publish_parser: argparse.ArgumentParser = subparsers.add_parser(
        "publish-metadata", help="Publish a metadata update to an SNS topic"
    )
    publish_parser.add_argument(
        "--topic-arn",
        default=None,
        help="Metadata topic ARN (defaults to METADATA_TOPIC_ARN)",
    )
    publish_parser.add_argument("--image", required=True, help="Image name (catalog key)")
    publish_parser.add_argument(
        "--type",
        required=True,
        dest="field_name",
        help=f"Metadata field, one of: {', '.join(METADATA_FIELDS)}",
    )
    publish_parser.add_argument("--value", required=True, help="Field value")
    publish_parser.add_argument("--region", default=None, help="AWS region")

    subparsers.add_parser("version", help="Show version information")
    return parser


def run_simulation(
    bucket: str,
    keys: List[str],
    metadata: List[Tuple[str, str, str]],
    config: PipelineConfig,
) -> dict:
    """Drive uploads and metadata through an in-memory pipeline and summarize."""
    from .testing.fakes import FakeCatalogStore, FakeS3Client, FakeSESClient

    s3_client = FakeS3Client()
    s3_client.create_bucket(bucket)
    catalog = FakeCatalogStore()
    email_client = FakeSESClient()

    pipeline = PipelineFactory.create_pipeline(
        s3_client=s3_client,
        catalog=catalog,
        email_client=email_client,
        config=config,
        logger=LoggerFactory.create_logger("photo-pipeline.simulate"),
    )

    for key in keys:
        pipeline.upload(bucket, key, b"simulated image bytes")
    summary = pipeline.run_until_idle()

    filtered = []
    for image_name, field_name, value in metadata:
        result = pipeline.publish_metadata(image_name, field_name, value)
        if not result.delivered:
            filtered.append(f"{image_name}:{field_name}")

    summary["metadata_filtered"] = filtered
    summary["catalog"] = {name: dict(item) for name, item in sorted(catalog.items.items())}
    summary["emails"] = email_client.subjects()
    return summary


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``photo-pipeline`` command."""
    parser = build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.command == "simulate":
        if not args.keys:
            parser.error("simulate needs at least one --key")
        config = PipelineConfig(
            email_from="album@example.com",
            email_to="uploader@example.com",
            max_receive_count=args.max_receive_count,
            batch_size=args.batch_size,
            batching_window=args.batching_window,
        )
        summary = run_simulation(args.bucket, args.keys, args.metadata, config)
        print(json.dumps(summary, indent=2))

    elif args.command == "publish-metadata":
        topic_arn = args.topic_arn or load_config().metadata_topic_arn
        if not topic_arn:
            parser.error("publish-metadata needs --topic-arn or METADATA_TOPIC_ARN")
        if args.field_name not in METADATA_FIELDS:
            print(
                f"Warning: {args.field_name!r} is not one of {', '.join(METADATA_FIELDS)}; "
                "the subscription filter will drop it",
                file=sys.stderr,
            )
        sns_client = AWSClientFactory.create_client("sns", region=args.region)
        try:
            response = publish_metadata(
                sns_client, topic_arn, args.image, args.field_name, args.value
            )
        except PhotoPipelineError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Published metadata message {response.get('MessageId', '')}")

    elif args.command == "version":
        print("Photo Pipeline CLI")
        print("Version 0.1.0")
        print("Image upload validation, cataloging and metadata")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
