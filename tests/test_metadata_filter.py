import os

import pytest

from profilesync.metadata_filter import delete_metadata


class TestDeleteMetadata:
    @pytest.mark.asyncio
    async def test_keeps_only_required_entries(self, temp_data_dir, create_profile):
        staging = create_profile(temp_data_dir / "staging")

        await delete_metadata(staging)

        assert sorted(p.name for p in staging.iterdir()) == ["Default"]
        assert sorted(p.name for p in (staging / "Default").iterdir()) == [
            "IndexedDB",
            "Local Storage",
        ]

    @pytest.mark.asyncio
    async def test_keeps_contents_of_required_entries(self, temp_data_dir, create_profile):
        staging = create_profile(temp_data_dir / "staging")

        await delete_metadata(staging)

        leveldb_log = staging / "Default" / "Local Storage" / "leveldb" / "000003.log"
        assert leveldb_log.read_bytes() == b"local-storage-bytes"

    @pytest.mark.asyncio
    async def test_returns_removed_count(self, temp_data_dir, create_profile):
        staging = create_profile(temp_data_dir / "staging")

        removed = await delete_metadata(staging)

        # Crashpad, Local State, Last Version + Cache, Service Worker, Preferences
        assert removed == 6

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, temp_data_dir, create_profile):
        staging = create_profile(temp_data_dir / "staging")
        await delete_metadata(staging)
        before = sorted(str(p) for p in staging.rglob("*"))

        removed = await delete_metadata(staging)

        assert removed == 0
        assert sorted(str(p) for p in staging.rglob("*")) == before

    @pytest.mark.asyncio
    async def test_missing_directory_is_not_fatal(self, temp_data_dir):
        assert await delete_metadata(temp_data_dir / "missing") == 0

    @pytest.mark.asyncio
    async def test_missing_default_dir_filters_root_only(self, temp_data_dir):
        staging = temp_data_dir / "staging"
        staging.mkdir()
        (staging / "IndexedDB").mkdir()
        (staging / "lockfile").write_text("")

        removed = await delete_metadata(staging)

        assert removed == 1
        assert [p.name for p in staging.iterdir()] == ["IndexedDB"]

    @pytest.mark.asyncio
    async def test_removes_symlink_without_touching_target(self, temp_data_dir):
        outside = temp_data_dir / "outside"
        outside.mkdir()
        (outside / "precious.txt").write_text("keep me")
        staging = temp_data_dir / "staging"
        staging.mkdir()
        os.symlink(outside, staging / "SingletonSocket")

        await delete_metadata(staging)

        assert not (staging / "SingletonSocket").is_symlink()
        assert (outside / "precious.txt").read_text() == "keep me"

    @pytest.mark.asyncio
    async def test_custom_required_entries(self, temp_data_dir, create_profile):
        staging = create_profile(temp_data_dir / "staging")

        await delete_metadata(staging, required_entries=["Default", "Preferences"])

        assert [p.name for p in (staging / "Default").iterdir()] == ["Preferences"]
