"""
Tests for api/services/order_archive.py
"""

import asyncio
import io
import zipfile
from datetime import datetime

from api.services.order_archive import archive_folder_name, build_order_archive, select_objects


class TestArchiveFolderName:

    def test_format(self):
        name = archive_folder_name("Maria", "123", datetime(2024, 5, 17, 10, 30))

        assert name == "2024-05-17_Maria_123"

    def test_iso_string_date(self):
        assert archive_folder_name("Ana", "9", "2024-02-01T12:00:00Z") == "2024-02-01_Ana_9"

    def test_path_characters_are_replaced(self):
        assert "/" not in archive_folder_name("A/B", "1", "2024-01-01")


class TestSelectObjects:

    def test_first_name_wins_on_collision(self):
        keys = [
            "public/files/B/AA-001.jpg",
            "public/files/A/AA-001.jpg",
            "public/files/A/AA-002.png",
        ]

        selected, collisions, missing = select_objects(keys, ["AA-001", "AA-002", "ZZ-9"])

        assert selected == ["public/files/A/AA-001.jpg", "public/files/A/AA-002.png"]
        assert collisions == ["public/files/B/AA-001.jpg"]
        assert missing == ["ZZ-9"]


class TestBuildOrderArchive:

    def test_zip_contains_selected_images(self, service, storage):
        storage.add("public/files/A/AA-001.jpg", data=b"one")
        storage.add("public/files/A/B/AA-002.jpg", data=b"two")
        storage.add("public/files/A/AA-003.jpg", data=b"three")

        archive = asyncio.run(
            build_order_archive(service, ["AA-001", "AA-002"], "Maria", "123", "2024-05-17")
        )

        assert archive.filename == "2024-05-17_Maria_123.zip"
        assert len(archive.found_files) == 2
        with zipfile.ZipFile(io.BytesIO(archive.data)) as zf:
            assert sorted(zf.namelist()) == [
                "2024-05-17_Maria_123/AA-001.jpg",
                "2024-05-17_Maria_123/AA-002.jpg",
            ]
            assert zf.read("2024-05-17_Maria_123/AA-002.jpg") == b"two"
