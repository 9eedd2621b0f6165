#!/usr/bin/env python3
"""
CivicAI - Report a Civic Issue
Captures a photo/video (or uses a file), attaches a location and submits it.
"""
import argparse
import asyncio
import sys

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from civicai.capture import (
    IPGeolocationProvider,
    LocationCapture,
    MediaCapture,
    NominatimGeocoder,
    OpenCVCamera,
)
from civicai.core.config import settings
from civicai.core.errors import CivicAIError, DeviceNotReady, LocationUnavailable, describe_error
from civicai.core.logging import get_logger, setup_logging
from civicai.issues.models import IssueCategory, MediaAsset
from civicai.store import create_stores
from civicai.submission import ReportSession, SubmissionPipeline, UploadOrchestrator

logger = get_logger("civicai.report_issue")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Report a civic issue")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", help="Photo or video file to attach instead of the camera")
    source.add_argument("--video", type=float, metavar="SECONDS",
                        help="Record a video of this length (capped by the recording ceiling)")
    parser.add_argument("--address", help="Address or area name instead of the device location")
    parser.add_argument("--category", required=True,
                        help="One of: " + ", ".join(c.value for c in IssueCategory))
    parser.add_argument("--description", required=True, help="Describe the issue")
    return parser.parse_args(argv)


async def capture_photo(media: MediaCapture, attempts: int = 10) -> MediaAsset:
    """Snapshot, retrying while the camera warms up."""
    await media.open_camera()
    for _ in range(attempts - 1):
        try:
            return await media.capture_snapshot()
        except DeviceNotReady:
            await asyncio.sleep(0.5)
    return await media.capture_snapshot()


async def run(args: argparse.Namespace) -> int:
    issue_store, blob_store = create_stores()
    geocoder = NominatimGeocoder() if settings.geocoder_enabled else None
    provider = IPGeolocationProvider()

    media = MediaCapture(OpenCVCamera())
    location = LocationCapture(provider, geocoder)
    pipeline = SubmissionPipeline(issue_store, UploadOrchestrator(blob_store))
    session = ReportSession(pipeline, media, location)

    try:
        print("\nCapturing evidence...")
        async with media.session():
            if args.file:
                media.select_file(MediaAsset.from_file(args.file))
            elif args.video:
                await media.open_camera()
                await media.start_recording()
                await asyncio.sleep(min(args.video, settings.max_recording_seconds))
                await media.stop_recording()
            else:
                await capture_photo(media)
        print(f"  - Media: {media.asset!r}")

        print("\nLocating...")
        if args.address:
            await location.set_manual(args.address)
        else:
            try:
                await location.request_current_location()
            except LocationUnavailable as e:
                print(f"  {describe_error(e)} (use --address)")
                return 1
        print(f"  - {location.current}")
        if location.current.address:
            print(f"  - {location.current.address}")

        session.category = args.category
        session.description = args.description
        if not session.can_submit:
            print(f"\nCannot submit yet, missing: {', '.join(session.missing_fields())}")
            return 1

        print("\nSubmitting...")
        issue = await session.submit()

    except CivicAIError as e:
        logger.error(f"Report failed: {e}")
        print(f"\nERROR: {describe_error(e)}")
        return 1
    finally:
        if geocoder is not None:
            await geocoder.aclose()
        await provider.aclose()
        await issue_store.close()
        await blob_store.close()

    print("\nIssue reported successfully!")
    print(f"  - ID:         {issue.id}")
    print(f"  - Title:      {issue.title}")
    print(f"  - Department: {issue.department}")
    print(f"  - Status:     {issue.status.value}")
    print(f"  - Priority:   {issue.priority.value}")
    return 0


def main():
    args = parse_args()
    setup_logging()

    print("=" * 60)
    print("CivicAI - Report Civic Issue")
    print("=" * 60)

    exit_code = asyncio.run(run(args))
    print("=" * 60)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
