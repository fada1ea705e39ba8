"""Tests for AnnotationService read-transform-write operations."""

import json
from concurrent.futures import ThreadPoolExecutor

import pytest

from reelnotes.domain.exceptions import DocumentWriteError
from reelnotes.domain.models import AnnotationDocument, Interval
from reelnotes.repositories.json_document_repository import JsonDocumentRepository
from reelnotes.services.annotation_service import AnnotationService


class FakeClock:
    """Deterministic millisecond clock that ticks on every call."""

    def __init__(self, start: int = 1000):
        self.value = start

    def __call__(self) -> int:
        self.value += 1
        return self.value


class FailingRepository(JsonDocumentRepository):
    """Repository whose writes always fail."""

    def write(self, media_path, document):
        raise DocumentWriteError(self.sidecar_path(media_path), "read-only file system")


@pytest.fixture
def repository():
    return JsonDocumentRepository()


@pytest.fixture
def service(repository):
    return AnnotationService(repository, clock=FakeClock())


@pytest.fixture
def media_path(tmp_path):
    return str(tmp_path / "film.mkv")


class TestInitAndRead:
    def test_init_returns_sidecar_path(self, service, media_path, tmp_path):
        assert service.init(media_path) == str(tmp_path / "film.json")

    def test_init_rejects_missing_media_path(self, service):
        assert service.init(None) is None
        assert service.init("") is None
        assert service.init(42) is None

    def test_read_missing_document(self, service, media_path):
        assert service.read(media_path) is None

    def test_read_after_init(self, service, media_path):
        service.init(media_path)

        document = service.read(media_path)

        assert document.acts == []
        assert document.notes == []


class TestAdd:
    def test_add_act_scenario(self, service, media_path):
        document = service.add_act(media_path, 10)
        first_key = document.acts[0].created_at
        assert document.acts == [Interval(start=10, created_at=first_key)]

        document = service.add_act(media_path, 20)

        assert document.acts[0] == Interval(start=10, end=20, created_at=first_key)
        assert document.acts[1].start == 20
        assert document.acts[1].is_open()
        assert document.acts[1].created_at > first_key

    def test_add_persists_and_stamps_updated_at(self, service, media_path):
        document = service.add_shot(media_path, 1.5)

        assert document.updated_at is not None
        assert service.read(media_path) == document

    def test_add_creates_document_when_missing(self, service, media_path, tmp_path):
        service.add_section(media_path, 3)

        assert (tmp_path / "film.json").exists()

    def test_add_shot_then_section_scenario(self, service, media_path):
        document = service.add_shot(media_path, 5)
        assert [s.start for s in document.shots] == [5]
        assert document.acts == []
        assert document.sections == []

        document = service.add_section(media_path, 8)

        assert document.shots[0].end == 8
        assert len(document.sections) == 1
        assert document.sections[0].start == 8
        assert document.sections[0].is_open()

    def test_add_act_closes_section_and_shot(self, service, media_path):
        service.add_section(media_path, 1)
        service.add_shot(media_path, 2)

        document = service.add_act(media_path, 9)

        assert document.sections[0].end == 9
        assert document.shots[0].end == 9
        assert document.acts[0].is_open()

    @pytest.mark.parametrize(
        "media, time",
        [
            (None, 1),
            ("", 1),
            ("   ", 1),
            ("/tmp/x.mp4", None),
            ("/tmp/x.mp4", "10"),
            ("/tmp/x.mp4", True),
            ("/tmp/x.mp4", float("nan")),
            ("/tmp/x.mp4", 10**400),
        ],
    )
    def test_add_rejects_malformed_requests(self, service, media, time):
        assert service.add_act(media, time) is None

    def test_rejected_add_writes_nothing(self, service, media_path, tmp_path):
        service.add_shot(media_path, "soon")

        assert not (tmp_path / "film.json").exists()

    def test_add_on_corrupt_document_starts_fresh(
        self, service, repository, media_path
    ):
        with open(repository.sidecar_path(media_path), "w", encoding="utf-8") as f:
            f.write("{{{")

        document = service.add_act(media_path, 4)

        assert [a.start for a in document.acts] == [4]
        assert service.read(media_path) == document


class TestUpdate:
    def test_reopen_act_with_null_end(self, service, media_path):
        service.add_act(media_path, 10)
        document = service.add_act(media_path, 20)
        first_key = document.acts[0].created_at
        assert document.acts[0].end == 20

        document = service.update_act(media_path, first_key, {"end": None})

        assert document.acts[0].is_open()
        assert service.read(media_path).acts[0].is_open()

    def test_sets_and_clears_fields(self, service, media_path):
        key = service.add_section(media_path, 0).sections[0].created_at

        document = service.update_section(
            media_path, key, {"title": "Chase", "note": "handheld", "end": 12}
        )
        assert document.sections[0] == Interval(
            start=0, end=12, created_at=key, title="Chase", note="handheld"
        )

        document = service.update_section(media_path, key, {"note": None})

        assert document.sections[0].title == "Chase"
        assert document.sections[0].note is None

    def test_wrong_typed_fields_are_ignored(self, service, media_path):
        before = service.add_shot(media_path, 3)
        key = before.shots[0].created_at

        document = service.update_shot(
            media_path, key, {"start": "7", "end": False, "title": 9}
        )

        assert document.shots == before.shots

    def test_update_does_not_cascade(self, service, media_path):
        service.add_shot(media_path, 1)
        document = service.add_act(media_path, 5)
        key = document.acts[0].created_at

        updated = service.update_act(media_path, key, {"start": 0})

        assert updated.acts[0].start == 0
        assert updated.shots == document.shots

    def test_rejects_oversized_key(self, service, media_path):
        service.add_act(media_path, 1)

        assert service.update_act(media_path, 10**400, {"end": 2}) is None
        assert service.delete_act(media_path, 10**400) is None

    def test_empty_update_is_logged(self, service, media_path, caplog):
        key = service.add_act(media_path, 1).acts[0].created_at

        with caplog.at_level("DEBUG", logger="reelnotes.services.annotation_service"):
            document = service.update_act(media_path, key, {"title": 3})

        assert document.acts[0].title is None
        assert "changes no fields" in caplog.text

    def test_unknown_key_leaves_document_unchanged(self, service, media_path):
        before = service.add_act(media_path, 10)

        document = service.update_act(media_path, -1, {"end": 99})

        assert document.acts == before.acts

    def test_missing_document_reports_not_found(self, service, media_path, tmp_path):
        assert service.update_act(media_path, 1, {"end": 2}) is None
        assert not (tmp_path / "film.json").exists()

    def test_corrupt_document_reports_not_found(
        self, service, repository, media_path
    ):
        with open(repository.sidecar_path(media_path), "w", encoding="utf-8") as f:
            f.write("garbage")

        assert service.update_shot(media_path, 1, {"end": 2}) is None

    def test_rejects_malformed_requests(self, service, media_path):
        service.add_act(media_path, 1)

        assert service.update_act(media_path, "1", {"end": 2}) is None
        assert service.update_act(media_path, None, {"end": 2}) is None
        assert service.update_act(None, 1, {"end": 2}) is None
        assert service.update_act(media_path, 1, ["end"]) is None


class TestDelete:
    def test_delete_act(self, service, media_path):
        service.add_act(media_path, 1)
        document = service.add_act(media_path, 2)
        key = document.acts[0].created_at

        document = service.delete_act(media_path, key)

        assert [a.start for a in document.acts] == [2]

    def test_delete_unknown_key_returns_document_unchanged(self, service, media_path):
        before = service.add_act(media_path, 1)

        document = service.delete_act(media_path, 123456)

        assert document is not None
        assert document.acts == before.acts
        assert document.notes == before.notes

    def test_delete_section_and_shot(self, service, media_path):
        service.add_section(media_path, 1)
        document = service.add_shot(media_path, 2)

        document = service.delete_section(media_path, document.sections[0].created_at)
        document = service.delete_shot(media_path, document.shots[0].created_at)

        assert document.sections == []
        assert document.shots == []

    def test_delete_missing_document_reports_not_found(self, service, media_path):
        assert service.delete_act(media_path, 1) is None

    def test_delete_rejects_malformed_key(self, service, media_path):
        service.add_act(media_path, 1)

        assert service.delete_act(media_path, "1") is None


class TestPatch:
    def test_patch_notes(self, service, media_path):
        service.add_act(media_path, 1)

        document = service.patch(media_path, {"notes": [{"text": "fix color"}]})

        assert document.notes == [{"text": "fix color"}]
        assert len(document.acts) == 1
        assert service.read(media_path).notes == [{"text": "fix color"}]

    def test_patch_preserves_unknown_fields(self, service, media_path, repository):
        service.patch(media_path, {"reviewer": "sam"})

        with open(repository.sidecar_path(media_path), encoding="utf-8") as f:
            assert json.load(f)["reviewer"] == "sam"

    def test_patch_creates_document_when_missing(self, service, media_path):
        document = service.patch(media_path, {"notes": ["a"]})

        assert document.notes == ["a"]

    def test_patch_repairs_interval_collections(self, service, media_path):
        document = service.patch(
            media_path, {"acts": [{"start": 1, "createdAt": 2}, {"title": "x"}]}
        )

        assert document.acts == [Interval(start=1, created_at=2)]

    def test_patch_rejects_non_mapping(self, service, media_path):
        assert service.patch(media_path, ["notes"]) is None
        assert service.patch(media_path, None) is None


class TestWriteFailures:
    def test_write_failure_surfaces_as_typed_error(self, media_path):
        service = AnnotationService(FailingRepository(), clock=FakeClock())

        with pytest.raises(DocumentWriteError) as exc_info:
            service.add_act(media_path, 1)

        assert "read-only file system" in str(exc_info.value)

    def test_failed_write_does_not_change_stored_document(
        self, repository, media_path
    ):
        AnnotationService(repository).add_act(media_path, 1)
        failing = AnnotationService(FailingRepository(), clock=FakeClock())

        with pytest.raises(DocumentWriteError):
            failing.add_act(media_path, 2)

        assert len(repository.read(media_path).acts) == 1


def test_concurrent_mutations_are_not_lost(repository, media_path):
    """Overlapping requests on one document must all land."""
    service = AnnotationService(repository)
    requests = 40

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(
            pool.map(lambda i: service.add_shot(media_path, float(i)), range(requests))
        )

    assert all(isinstance(r, AnnotationDocument) for r in results)
    shots = service.read(media_path).shots
    assert len(shots) == requests
    assert len({shot.created_at for shot in shots}) == requests
    assert [shot for shot in shots if shot.is_open()] == [shots[-1]]
