#!/usr/bin/env python3
"""
Test data generation script for Tubely.

Seeds draft videos for a development user and prints a bearer token for that
user, so the upload endpoint can be exercised right away:

    TOKEN=$(python scripts/create_test_data.py --user-id dev-user --token-only)
    curl -H "Authorization: Bearer $TOKEN" -F "video=@clip.mp4;type=video/mp4" \\
        http://localhost:8091/api/v1/videos/<video_id>/upload

Usage:
    python scripts/create_test_data.py [options]

Options:
    --user-id STR   Owner of the seeded videos (default: dev-user)
    --count INT     Number of draft videos to create (default: 5)
    --clean         Delete the user's existing videos first
    --seed INT      Random seed for reproducible titles
    --token-only    Print only the bearer token
    --verbose       Display detailed operation logs
"""

import argparse
import sys

from datetime import UTC, datetime, timedelta

from dotenv import load_dotenv
from faker import Faker
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from tubely.config import Settings, get_settings
from tubely.core.auth import create_local_jwt
from tubely.core.database import SERVER_SELECTION_TIMEOUT_MS, VIDEOS_COLLECTION
from tubely.models.video import VideoRecord


DEFAULT_USER_ID = "dev-user"
DEFAULT_COUNT = 5


class TestDataGenerator:
    """Inserts draft ``VideoRecord`` documents for one user."""

    def __init__(self, settings: Settings, seed: int | None = None, verbose: bool = False):
        self.settings = settings
        self.verbose = verbose
        self.faker = Faker()
        if seed is not None:
            Faker.seed(seed)
        self.client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS)
        self.collection = self.client[settings.mongodb_db_name][VIDEOS_COLLECTION]

    def log(self, message: str) -> None:
        if self.verbose:
            print(message, file=sys.stderr)

    def clean(self, user_id: str) -> int:
        deleted = self.collection.delete_many({"user_id": user_id}).deleted_count
        self.log(f"Deleted {deleted} existing videos for {user_id}")
        return deleted

    def build_video(self, user_id: str, age: timedelta) -> VideoRecord:
        created_at = datetime.now(UTC) - age
        return VideoRecord(
            user_id=user_id,
            title=self.faker.sentence(nb_words=4).rstrip("."),
            description=self.faker.paragraph(nb_sentences=2),
            created_at=created_at,
            updated_at=created_at,
        )

    def generate(self, user_id: str, count: int) -> list[VideoRecord]:
        videos = [self.build_video(user_id, timedelta(hours=index)) for index in range(count)]
        if videos:
            self.collection.insert_many([video.to_document() for video in videos])
        for video in videos:
            self.log(f"Created draft {video.id}: {video.title}")
        return videos

    def close(self) -> None:
        self.client.close()


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed draft videos and print a bearer token for Tubely")
    parser.add_argument("--user-id", default=DEFAULT_USER_ID, help="Owner of the seeded videos")
    parser.add_argument("--count", type=int, default=DEFAULT_COUNT, help="Number of draft videos to create")
    parser.add_argument("--clean", action="store_true", help="Delete the user's existing videos first")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible titles")
    parser.add_argument("--token-only", action="store_true", help="Print only the bearer token")
    parser.add_argument("--verbose", "-v", action="store_true", help="Display detailed operation logs")
    return parser.parse_args()


def main() -> int:
    args = parse_arguments()
    load_dotenv()
    settings = get_settings()

    token = create_local_jwt(args.user_id, settings)
    if args.token_only:
        print(token)
        return 0

    generator = TestDataGenerator(settings, seed=args.seed, verbose=args.verbose)
    try:
        if args.clean:
            generator.clean(args.user_id)
        videos = generator.generate(args.user_id, args.count)
    except PyMongoError as e:
        print(f"Failed to seed videos: {e}", file=sys.stderr)
        return 1
    finally:
        generator.close()

    print(f"User:  {args.user_id}")
    print(f"Token: {token}")
    print("Draft videos:")
    for video in videos:
        print(f"  {video.id}  {video.title}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
