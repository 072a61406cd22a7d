from datetime import date

import pytest

from resuopti.core.cache import metadata_key, stats_key
from resuopti.db.models import ApplicationRecord, ResumeMetadata, ResumeVersion
from resuopti.errors import AuthorizationError, InternalError, NotFoundError, ValidationError

MAX_UPLOAD = 10 * 1024 * 1024


def _create_file_resume(services, blob_store, user, position, name="cv.pdf"):
    stored = blob_store.path_for(user.id, position.id, name)
    stored.write_bytes(b"%PDF-1.4")
    return services.resumes.create_file(position.id, user.id, "Uploaded CV", str(stored), name, 8), stored


def test_create_online_pairs_resume_with_empty_metadata(services, user, position) -> None:
    resume = services.resumes.create_online(position.id, user.id, "  Backend CV  ", "")

    assert resume.kind == "online"
    assert resume.title == "Backend CV"
    assert resume.content == ""
    assert resume.file_path is None
    assert resume.metadata is not None
    assert resume.metadata.notes is None
    assert resume.metadata.tags == []


def test_ownership_is_checked_before_field_validation(services, user, other_user, position) -> None:
    with pytest.raises(AuthorizationError):
        services.resumes.create_online(position.id, other_user.id, "", None)

    with pytest.raises(NotFoundError) as exc:
        services.resumes.create_online("missing", user.id, "", None)
    assert exc.value.code == "PositionNotFound"


def test_create_online_validates_title_and_content(services, user, position) -> None:
    with pytest.raises(ValidationError) as exc:
        services.resumes.create_online(position.id, user.id, "   ", "body")
    assert exc.value.code == "EmptyTitle"

    with pytest.raises(ValidationError) as exc:
        services.resumes.create_online(position.id, user.id, "t" * 201, "body")
    assert exc.value.code == "TitleTooLong"

    with pytest.raises(ValidationError) as exc:
        services.resumes.create_online(position.id, user.id, "Title", None)
    assert exc.value.code == "InvalidContent"


def test_create_file_validates_upload_fields(services, user, position) -> None:
    with pytest.raises(ValidationError) as exc:
        services.resumes.create_file(position.id, user.id, "CV", "  ", "cv.pdf", 10)
    assert exc.value.code == "EmptyFilePath"

    with pytest.raises(ValidationError) as exc:
        services.resumes.create_file(position.id, user.id, "CV", "/tmp/cv.pdf", "", 10)
    assert exc.value.code == "EmptyFileName"

    for size in (-1, MAX_UPLOAD + 1, "100", 1.5, True):
        with pytest.raises(ValidationError) as exc:
            services.resumes.create_file(position.id, user.id, "CV", "/tmp/cv.pdf", "cv.pdf", size)
        assert exc.value.code == "InvalidFileSize"

    for size in (0, MAX_UPLOAD):
        resume = services.resumes.create_file(position.id, user.id, "CV", "/tmp/cv.pdf", "cv.pdf", size)
        assert resume.kind == "file"
        assert resume.file_size == size
        assert resume.content is None


def test_failed_metadata_insert_rolls_back_the_resume(services, db, user, position, monkeypatch) -> None:
    def fail(**kwargs):
        raise InternalError("failed to persist changes")

    monkeypatch.setattr(services.repo, "create_metadata", fail)

    with pytest.raises(InternalError):
        services.resumes.create_online(position.id, user.id, "Doomed", "body")

    assert services.repo.count_resumes(position.id) == 0
    assert db.query(ResumeVersion).count() == 0


def test_list_by_position_includes_metadata(services, user, position) -> None:
    older = services.resumes.create_online(position.id, user.id, "Older", "a")
    newer = services.resumes.create_online(position.id, user.id, "Newer", "b")
    services.metadata.add_tag(newer.id, user.id, "python")

    listed = services.resumes.list_by_position(position.id, user.id)

    assert {resume.id for resume in listed} == {older.id, newer.id}
    tags = {resume.id: resume.metadata.tags for resume in listed}
    assert tags[newer.id] == ["python"]
    assert tags[older.id] == []


def test_get_by_id_includes_parent_position(services, user, other_user, position, resume) -> None:
    fetched = services.resumes.get_by_id(resume.id, user.id)

    assert fetched.target_position.id == position.id
    assert fetched.target_position.name == position.name
    assert fetched.metadata.resume_id == resume.id

    with pytest.raises(AuthorizationError):
        services.resumes.get_by_id(resume.id, other_user.id)
    with pytest.raises(NotFoundError) as exc:
        services.resumes.get_by_id("missing", user.id)
    assert exc.value.code == "ResumeNotFound"


def test_update_online(services, blob_store, user, position, resume) -> None:
    updated = services.resumes.update_online(resume.id, user.id, {"title": " Backend CV v2 "})
    assert updated.title == "Backend CV v2"
    assert updated.content == "# Alice"

    updated = services.resumes.update_online(resume.id, user.id, {"content": ""})
    assert updated.content == ""

    with pytest.raises(ValidationError) as exc:
        services.resumes.update_online(resume.id, user.id, {})
    assert exc.value.code == "NoUpdateData"

    with pytest.raises(ValidationError) as exc:
        services.resumes.update_online(resume.id, user.id, {"content": 12})
    assert exc.value.code == "InvalidContent"

    file_resume, _ = _create_file_resume(services, blob_store, user, position)
    with pytest.raises(ValidationError) as exc:
        services.resumes.update_online(file_resume.id, user.id, {"title": "New"})
    assert exc.value.code == "WrongKind"


def test_update_metadata_delegates_to_lenient_path(services, user, resume) -> None:
    metadata = services.resumes.update_metadata(
        resume.id, user.id, {"notes": "  tailored for fintech  ", "tags": ["fintech", "", 3, " python "]}
    )
    assert metadata.notes == "tailored for fintech"
    assert metadata.tags == ["fintech", "python"]


def test_delete_cascades_and_invalidates_cache(services, db, cache, user, resume) -> None:
    services.metadata.get(resume.id, user.id)
    application = services.applications.create(resume.id, user.id, "Acme", date(2024, 6, 1))
    services.applications.get_stats(user.id)
    assert metadata_key(resume.id) in cache
    assert stats_key(user.id) in cache

    deleted = services.resumes.delete(resume.id, user.id)

    assert deleted.id == resume.id
    assert deleted.kind == "online"
    assert db.query(ResumeMetadata).count() == 0
    assert db.query(ApplicationRecord).count() == 0
    assert metadata_key(resume.id) not in cache
    assert stats_key(user.id) not in cache
    assert services.applications.get_stats(user.id).total == 0

    with pytest.raises(NotFoundError):
        services.resumes.get_by_id(resume.id, user.id)
    with pytest.raises(NotFoundError):
        services.metadata.get(resume.id, user.id)
    with pytest.raises(NotFoundError):
        services.applications.get_by_resume_id(resume.id, user.id)
    with pytest.raises(NotFoundError):
        services.applications.get_by_id(application.id, user.id)


def test_delete_file_resume_removes_blob(services, blob_store, user, position) -> None:
    file_resume, stored = _create_file_resume(services, blob_store, user, position)
    assert stored.exists()

    assert services.resumes.delete(file_resume.id, user.id).kind == "file"
    assert not stored.exists()


def test_blob_failure_does_not_undo_delete(services, blob_store, user, position, monkeypatch) -> None:
    file_resume, _ = _create_file_resume(services, blob_store, user, position)

    def refuse(path):
        raise PermissionError("read-only volume")

    monkeypatch.setattr(blob_store, "delete", refuse)

    deleted = services.resumes.delete(file_resume.id, user.id)

    assert deleted.id == file_resume.id
    assert services.repo.get_resume(file_resume.id) is None


def test_unexpected_blob_error_still_completes_delete(
    services, cache, blob_store, user, position, monkeypatch
) -> None:
    file_resume, _ = _create_file_resume(services, blob_store, user, position)
    services.applications.create(file_resume.id, user.id, "Acme", date(2024, 6, 1))
    services.metadata.get(file_resume.id, user.id)
    assert services.applications.get_stats(user.id).total == 1

    def broken(path):
        raise ValueError("embedded null byte")

    monkeypatch.setattr(blob_store, "delete", broken)

    deleted = services.resumes.delete(file_resume.id, user.id)

    assert deleted.kind == "file"
    assert services.repo.get_resume(file_resume.id) is None
    assert metadata_key(file_resume.id) not in cache
    assert stats_key(user.id) not in cache
    assert services.applications.get_stats(user.id).total == 0


def test_delete_of_foreign_resume_is_forbidden(services, other_user, resume) -> None:
    with pytest.raises(AuthorizationError):
        services.resumes.delete(resume.id, other_user.id)
    assert services.repo.get_resume(resume.id) is not None
