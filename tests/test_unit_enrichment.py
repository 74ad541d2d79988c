"""Unit tests for the enrichment status machine."""

import pytest
from moodify.errors import NotFoundError, ValidationError
from moodify.services.database import AUDIO_FEATURE_FIELDS, ENRICHMENT_STATUSES
from moodify.services.enrichment import EnrichmentService, EnrichmentStatus, coerce_status, feature_columns
from tests.helpers.payloads import FULL_FEATURES, bulk_tracks, track


@pytest.fixture
def queued(catalog):
    """Catalog with five unprocessed tracks created in order."""
    catalog.bulk.create_bulk(bulk_tracks(5, prefix="queued"))
    return catalog


class TestStatusClosure:
    """Test the closed set of processing statuses."""

    def test_enum_matches_store_constraint(self):
        assert tuple(s.value for s in EnrichmentStatus) == ENRICHMENT_STATUSES

    @pytest.mark.parametrize("value", ENRICHMENT_STATUSES)
    def test_coerce_known_values(self, value):
        assert coerce_status(value).value == value

    @pytest.mark.parametrize("value", ["done", "", "PROCESSED", None, 3])
    def test_coerce_rejects_unknown_values(self, value):
        with pytest.raises(ValidationError) as exc_info:
            coerce_status(value)
        assert exc_info.value.detail["field"] == "audio_features_status"

    def test_update_status_rejects_unknown_value(self, catalog):
        catalog.tracks.create_track(track())

        with pytest.raises(ValidationError):
            catalog.enrichment.update_status("test-track-123", "finished")

        assert catalog.tracks.get_track("test-track-123")["audio_features_status"] == "unprocessed"


class TestFeatureColumns:
    """Test feature selection for new tracks."""

    def test_nothing_present(self):
        assert feature_columns({"spotify_id": "x", "title": "y"}) == {}

    def test_features_imply_imported(self):
        assert feature_columns({"tempo": 120.0}) == {"tempo": 120.0, "audio_features_status": "imported"}

    def test_null_features_ignored(self):
        assert feature_columns({"tempo": None, "energy": None}) == {}

    def test_status_without_features(self):
        assert feature_columns({"audio_features_status": "failed"}) == {"audio_features_status": "failed"}

    def test_unprocessed_with_features_becomes_imported(self):
        columns = feature_columns({"energy": 0.5, "audio_features_status": "unprocessed"})
        assert columns["audio_features_status"] == "imported"

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            feature_columns({"audio_features_status": "bogus"})


class TestListUnprocessed:
    """Test the non-claiming queue listing."""

    def test_oldest_first(self, queued):
        listed = queued.enrichment.list_unprocessed()
        assert [t["spotify_id"] for t in listed] == [f"queued-{i}" for i in range(1, 6)]

    def test_limit(self, queued):
        listed = queued.enrichment.list_unprocessed(limit=2)
        assert [t["spotify_id"] for t in listed] == ["queued-1", "queued-2"]

    def test_excludes_other_statuses(self, queued):
        queued.enrichment.update_status("queued-1", "processing")
        queued.enrichment.update_status("queued-3", "failed")

        listed = queued.enrichment.list_unprocessed()

        assert [t["spotify_id"] for t in listed] == ["queued-2", "queued-4", "queued-5"]

    def test_listing_does_not_claim(self, queued):
        queued.enrichment.list_unprocessed()
        assert len(queued.enrichment.list_unprocessed()) == 5

    @pytest.mark.parametrize("limit", [0, -3])
    def test_invalid_limit(self, queued, limit):
        with pytest.raises(ValidationError):
            queued.enrichment.list_unprocessed(limit=limit)


class TestClaimUnprocessed:
    """Test atomic claiming of queued tracks."""

    def test_claim_moves_to_processing(self, queued):
        claimed = queued.enrichment.claim_unprocessed(limit=3)

        assert [t["spotify_id"] for t in claimed] == ["queued-1", "queued-2", "queued-3"]
        assert all(t["audio_features_status"] == "processing" for t in claimed)
        assert [t["spotify_id"] for t in queued.enrichment.list_unprocessed()] == ["queued-4", "queued-5"]

    def test_successive_claims_do_not_overlap(self, queued):
        first = {t["spotify_id"] for t in queued.enrichment.claim_unprocessed(limit=3)}
        second = {t["spotify_id"] for t in queued.enrichment.claim_unprocessed(limit=3)}

        assert first.isdisjoint(second)
        assert len(first | second) == 5

    def test_empty_queue(self, catalog):
        assert catalog.enrichment.claim_unprocessed() == []


class TestUpdateAudioFeatures:
    """Test feature write-back."""

    def test_write_back_full_features(self, queued):
        record = queued.enrichment.update_audio_features("queued-1", FULL_FEATURES)

        assert record["audio_features_status"] == "processed"
        for field in AUDIO_FEATURE_FIELDS:
            assert record[field] == FULL_FEATURES[field]

    def test_missing_features_are_cleared(self, catalog):
        catalog.tracks.create_track(track("with_audio_features"))

        record = catalog.enrichment.update_audio_features("audio-track-789", {"tempo": 99.0})

        assert record["tempo"] == 99.0
        assert record["danceability"] is None
        assert record["track_genre"] is None

    def test_failed_status_allowed(self, queued):
        record = queued.enrichment.update_audio_features("queued-2", {}, status="failed")
        assert record["audio_features_status"] == "failed"

    @pytest.mark.parametrize("status", ["unprocessed", "processing", "imported"])
    def test_other_statuses_rejected(self, queued, status):
        with pytest.raises(ValidationError):
            queued.enrichment.update_audio_features("queued-1", FULL_FEATURES, status=status)

    def test_unknown_track(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.enrichment.update_audio_features("missing", FULL_FEATURES)

    def test_updated_at_is_stamped(self, queued):
        with queued.db.get_connection() as conn:
            conn.execute("UPDATE tracks SET updated_at = '2000-01-01 00:00:00' WHERE spotify_id = 'queued-1'")
            conn.commit()

        record = queued.enrichment.update_audio_features("queued-1", FULL_FEATURES)

        assert record["updated_at"] != "2000-01-01 00:00:00"


class TestUpdateStatus:
    """Test status-only transitions."""

    @pytest.mark.parametrize("status", ENRICHMENT_STATUSES)
    def test_any_known_status(self, queued, status):
        record = queued.enrichment.update_status("queued-1", status)
        assert record["audio_features_status"] == status

    def test_features_untouched(self, catalog):
        catalog.tracks.create_track(track("with_audio_features"))

        record = catalog.enrichment.update_status("audio-track-789", "failed")

        assert record["danceability"] == 0.85

    def test_unknown_track(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.enrichment.update_status("missing", "processed")

    def test_service_uses_given_store(self, db):
        service = EnrichmentService(db)
        assert service.list_unprocessed() == []
