#!/usr/bin/env python3
"""
Environment initialization script for Tubely.

Prepares everything the API expects to exist before it serves uploads:
the ``videos`` collection with schema validation and indexes, the object
storage bucket, and the local staging directory. Safe to run repeatedly.

Usage:
    python scripts/init_db.py [options]

Options:
    --drop          Drop the videos collection first (WARNING: destructive)
    --skip-bucket   Do not create the storage bucket
    --env-file      Load environment variables from this file first
    --verbose       Display detailed operation logs
"""

import argparse
import os
import sys

from datetime import UTC, datetime
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import CollectionInvalid, OperationFailure, PyMongoError

from tubely.config import Settings, get_settings
from tubely.core.database import SERVER_SELECTION_TIMEOUT_MS, VIDEO_INDEXES, VIDEOS_COLLECTION
from tubely.core.storage import StorageClient


VIDEO_VALIDATOR: dict[str, Any] = {
    "$jsonSchema": {
        "bsonType": "object",
        "required": ["_id", "user_id", "title", "created_at", "updated_at"],
        "properties": {
            "_id": {"bsonType": "string", "description": "Video id (UUID4 string)"},
            "user_id": {"bsonType": "string", "minLength": 1, "description": "Owning user"},
            "title": {"bsonType": "string", "minLength": 1, "maxLength": 200},
            "description": {"bsonType": "string", "maxLength": 5000},
            "video_url": {
                "bsonType": ["string", "null"],
                "pattern": "^(landscape|portrait|other)/[0-9a-f]{32}-processed\\.mp4$",
                "description": "Storage key of the processed video",
            },
            "thumbnail_url": {
                "bsonType": ["string", "null"],
                "description": "Storage key of the thumbnail",
            },
            "created_at": {"bsonType": "date"},
            "updated_at": {"bsonType": "date"},
        },
    }
}


class EnvironmentInitializer:
    """Creates the collection, bucket and staging directory for one environment."""

    def __init__(self, settings: Settings, verbose: bool = False):
        self.settings = settings
        self.verbose = verbose
        self.client: MongoClient | None = None
        self.db: Database | None = None

    def log(self, message: str, level: str = "INFO") -> None:
        if level == "DEBUG" and not self.verbose:
            return
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
        print(f"[{timestamp}] [{level}] {message}")

    def connect(self) -> bool:
        self.log(f"Connecting to MongoDB database '{self.settings.mongodb_db_name}'...")
        try:
            self.client = MongoClient(
                self.settings.mongodb_uri,
                serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS,
            )
            self.client.admin.command("ping")
        except PyMongoError as e:
            self.log(f"Could not connect to MongoDB: {e}", "ERROR")
            return False

        self.db = self.client[self.settings.mongodb_db_name]
        self.log("Connected to MongoDB", "DEBUG")
        return True

    def drop_videos(self) -> None:
        self.log(f"Dropping collection {VIDEOS_COLLECTION}", "WARNING")
        self.db.drop_collection(VIDEOS_COLLECTION)

    def create_videos_collection(self) -> bool:
        """
        Create (or update validation on) the videos collection and its indexes.

        Returns:
            True if successful, False otherwise.
        """
        self.log(f"Creating {VIDEOS_COLLECTION} collection...")
        try:
            collection = self._create_collection_with_validation(VIDEOS_COLLECTION, VIDEO_VALIDATOR)
            self._create_indexes(collection)
        except PyMongoError as e:
            self.log(f"Error creating {VIDEOS_COLLECTION} collection: {e}", "ERROR")
            return False
        return True

    def _create_collection_with_validation(self, name: str, validator: dict[str, Any]) -> Collection:
        if name in self.db.list_collection_names():
            self.log(f"Collection {name} already exists, updating validation rules", "DEBUG")
            self.db.command("collMod", name, validator=validator, validationLevel="moderate")
            return self.db[name]

        try:
            self.db.create_collection(name, validator=validator, validationLevel="moderate")
        except CollectionInvalid:
            self.log(f"Collection {name} was created concurrently", "DEBUG")
        else:
            self.log(f"Created collection: {name}")
        return self.db[name]

    def _create_indexes(self, collection: Collection) -> None:
        existing = collection.index_information()
        for index in VIDEO_INDEXES:
            index_name = index.document["name"]
            if index_name in existing:
                self.log(f"  Index '{index_name}' already exists, skipping", "DEBUG")
                continue
            try:
                collection.create_indexes([index])
            except OperationFailure as e:
                self.log(f"  Error creating index {index_name}: {e}", "WARNING")
                continue
            self.log(f"  Created index: {index_name}")

    def ensure_bucket(self) -> bool:
        self.log(f"Ensuring bucket '{self.settings.s3_bucket_name}' exists...")
        try:
            created = StorageClient(self.settings).ensure_bucket_exists()
        except (ClientError, BotoCoreError) as e:
            self.log(f"Could not prepare bucket: {e}", "ERROR")
            return False
        self.log("Bucket created" if created else "Bucket already exists", "DEBUG")
        return True

    def ensure_assets_root(self) -> bool:
        try:
            os.makedirs(self.settings.assets_root, exist_ok=True)
        except OSError as e:
            self.log(f"Could not create staging directory: {e}", "ERROR")
            return False
        self.log(f"Staging directory ready: {os.path.abspath(self.settings.assets_root)}")
        return True

    def close(self) -> None:
        if self.client:
            self.client.close()
            self.log("MongoDB connection closed", "DEBUG")


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Initialize MongoDB, object storage and the staging directory for Tubely",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/init_db.py                    # Initialize with settings from .env
  python scripts/init_db.py --env-file .env.dev
  python scripts/init_db.py --drop             # Recreate the videos collection (DESTRUCTIVE)
        """,
    )
    parser.add_argument("--drop", action="store_true", help="Drop the videos collection first")
    parser.add_argument("--skip-bucket", action="store_true", help="Do not create the storage bucket")
    parser.add_argument("--env-file", default=None, help="Environment file to load before reading settings")
    parser.add_argument("--verbose", "-v", action="store_true", help="Display detailed operation logs")
    return parser.parse_args()


def main() -> int:
    """
    Returns:
        Exit code (0 for success, 1 for failure).
    """
    args = parse_arguments()

    if args.env_file:
        load_dotenv(args.env_file, override=True)
    else:
        load_dotenv()

    print("\n" + "=" * 60)
    print("Tubely - Environment Initialization")
    print("=" * 60 + "\n")

    initializer = EnvironmentInitializer(get_settings(), verbose=args.verbose)

    try:
        if not initializer.connect():
            return 1

        if args.drop:
            confirmation = input(
                f"\nWARNING: This will DELETE ALL DATA in '{VIDEOS_COLLECTION}'.\nType 'yes' to confirm: "
            )
            if confirmation.lower() != "yes":
                print("Operation cancelled.")
                return 0
            initializer.drop_videos()

        success = initializer.create_videos_collection()
        success = initializer.ensure_assets_root() and success
        if not args.skip_bucket:
            success = initializer.ensure_bucket() and success

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\n\nInitialization interrupted by user.")
        return 130

    finally:
        initializer.close()


if __name__ == "__main__":
    sys.exit(main())
