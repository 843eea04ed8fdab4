"""End-to-end tests of the locally assembled pipeline."""

import threading

import pytest

from photo_pipeline.core import PipelineConfig
from photo_pipeline.core.models import UploadEvent, ObjectLocation
from photo_pipeline.core.queue import MessageState
from photo_pipeline.core.services import ImageCatalogService
from photo_pipeline.pipeline import PipelineFactory
from photo_pipeline.testing.fakes import (
    FakeCatalogStore,
    FakeLogger,
    FakeS3Client,
    FakeSESClient,
    make_upload_queue_body,
)


@pytest.fixture
def s3_client():
    client = FakeS3Client()
    client.create_bucket("bucket1")
    return client


@pytest.fixture
def catalog():
    return FakeCatalogStore()


@pytest.fixture
def email_client():
    return FakeSESClient()


@pytest.fixture
def pipeline(s3_client, catalog, email_client):
    config = PipelineConfig(
        email_from="album@example.com",
        email_to="uploader@example.com",
        batching_window=0,
    )
    return PipelineFactory.create_pipeline(
        s3_client=s3_client,
        catalog=catalog,
        email_client=email_client,
        config=config,
        logger=FakeLogger(),
    )


def test_valid_upload_is_cataloged_and_confirmed(pipeline, catalog, email_client):
    """An accepted image gets one catalog entry and one confirmation."""
    pipeline.upload("bucket1", "vacation.png", b"png bytes")
    summary = pipeline.run_until_idle()

    assert summary["cataloged"] == 1
    assert summary["dead_lettered"] == 0
    assert catalog.items == {"vacation.png": {"imageName": "vacation.png"}}
    assert email_client.subjects() == ["New Image Upload"]
    assert "s3://bucket1/vacation.png" in email_client.sent[0]["body"]
    assert email_client.sent[0]["to"] == ["uploader@example.com"]


@pytest.mark.parametrize("key", ["photo.jpeg", "PHOTO.PNG", "dir/nested image.Jpeg"])
def test_supported_extensions_are_case_insensitive(pipeline, catalog, key):
    pipeline.upload("bucket1", key, b"bytes")
    pipeline.run_until_idle()

    assert catalog.get(key) is not None


@pytest.mark.parametrize("key", ["notes.txt", "photo.jpg", "image.gif", "README"])
def test_unsupported_upload_is_dead_lettered_and_rejected(pipeline, catalog, email_client, key):
    """Three failed attempts, one dead letter, one rejection, no entry."""
    pipeline.upload("bucket1", key, b"bytes")
    summary = pipeline.run_until_idle()

    messages = pipeline.image_queue.history()
    assert len(messages) == 1
    assert messages[0].attempts == 3
    assert messages[0].state == MessageState.DEAD_LETTERED
    assert pipeline.image_queue.messages() == []
    assert pipeline.dead_letter_queue.messages() == []
    assert summary["upload_attempts_failed"] == 3
    assert summary["dead_lettered"] == 1
    assert summary["rejections_sent"] == 1
    assert catalog.get(key) is None
    assert sorted(email_client.subjects()) == ["FAILED: Image Upload", "New Image Upload"]
    rejection = [e for e in email_client.sent if e["subject"] == "FAILED: Image Upload"][0]
    assert f"s3://bucket1/{key}" in rejection["body"]


def test_redelivery_is_idempotent(pipeline, catalog):
    """The same upload delivered twice leaves a single entry."""
    pipeline.upload("bucket1", "vacation.png", b"png bytes")
    pipeline.run_until_idle()
    catalog.set_field("vacation.png", "Caption", "Beach")

    pipeline.image_queue.send(make_upload_queue_body("bucket1", "vacation.png"))
    summary = pipeline.run_until_idle()

    assert summary["cataloged"] == 1
    assert len(catalog) == 1
    assert catalog.get("vacation.png").Caption == "Beach"


def test_missing_object_is_retried_until_dead_lettered(pipeline, catalog):
    """A supported key whose object cannot be read is never cataloged."""
    pipeline.image_queue.send(make_upload_queue_body("bucket1", "ghost.png"))
    summary = pipeline.run_until_idle()

    assert summary["dead_lettered"] == 1
    assert catalog.get("ghost.png") is None


class TestMetadata:
    """Metadata published through the filtered topic."""

    @pytest.fixture(autouse=True)
    def cataloged(self, pipeline):
        pipeline.upload("bucket1", "vacation.png", b"png bytes")
        pipeline.run_until_idle()

    def test_caption_update_touches_only_caption(self, pipeline, catalog):
        result = pipeline.publish_metadata("vacation.png", "Caption", "At the beach")

        assert result.delivered == ["UpdateTable"]
        assert catalog.items["vacation.png"] == {
            "imageName": "vacation.png",
            "Caption": "At the beach",
        }

    def test_date_update(self, pipeline, catalog):
        pipeline.publish_metadata("vacation.png", "Date", "2023-05-01")

        entry = catalog.get("vacation.png")
        assert entry.Date == "2023-05-01"
        assert entry.Caption is None

    def test_later_update_wins(self, pipeline, catalog):
        pipeline.publish_metadata("vacation.png", "Photographer", "Ann")
        pipeline.publish_metadata("vacation.png", "Photographer", "Bob")

        assert catalog.get("vacation.png").Photographer == "Bob"

    def test_unlisted_field_is_filtered_out(self, pipeline, catalog):
        """Location never reaches the updater."""
        result = pipeline.publish_metadata("vacation.png", "Location", "Paris")

        assert result.delivered == []
        assert result.filtered == ["UpdateTable"]
        assert catalog.items["vacation.png"] == {"imageName": "vacation.png"}

    def test_unknown_image_gets_no_entry(self, pipeline, catalog):
        result = pipeline.publish_metadata("ghost.png", "Caption", "Boo")

        assert result.failed == {}
        assert catalog.get("ghost.png") is None
        assert len(catalog) == 1


def test_concurrent_catalog_uploads_create_one_entry(s3_client, catalog):
    """Parallel deliveries of the same upload race on a conditional insert."""
    s3_client.get_bucket("bucket1").add_object("vacation.png", b"png bytes")
    cataloger = ImageCatalogService(s3_client, catalog, FakeLogger())
    event = UploadEvent(source=ObjectLocation(bucket="bucket1", key="vacation.png"))
    barrier = threading.Barrier(8)
    outcomes = []

    def worker():
        barrier.wait()
        outcomes.append(cataloger.catalog_upload(event))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(outcomes) == 8
    assert len(catalog) == 1


def test_mixed_batch(pipeline, catalog, email_client):
    """Valid and invalid uploads in one batch settle independently."""
    for key in ("a.png", "b.txt", "c.jpeg", "d.jpg"):
        pipeline.upload("bucket1", key, b"bytes")

    summary = pipeline.run_until_idle()

    assert sorted(catalog.items) == ["a.png", "c.jpeg"]
    assert summary["cataloged"] == 2
    assert summary["dead_lettered"] == 2
    assert email_client.subjects().count("New Image Upload") == 4
    assert email_client.subjects().count("FAILED: Image Upload") == 2


def test_confirmation_failure_does_not_block_cataloging(pipeline, catalog, email_client):
    email_client.fail_for = ["vacation.png"]

    result = pipeline.upload("bucket1", "vacation.png", b"png bytes")
    pipeline.run_until_idle()

    assert "img-created-queue" in result.delivered
    assert catalog.get("vacation.png") is not None
    assert email_client.sent == []
