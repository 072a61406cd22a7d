import pytest

from resuopti.core.cache import metadata_key
from resuopti.db.models import ResumeMetadata
from resuopti.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError


def test_get_is_cached_and_idempotent(services, cache, user, resume) -> None:
    first = services.metadata.get(resume.id, user.id)
    second = services.metadata.get(resume.id, user.id)

    assert first == second
    assert metadata_key(resume.id) in cache


def test_get_recreates_missing_record(services, db, user, resume) -> None:
    db.query(ResumeMetadata).delete()
    db.commit()

    healed = services.metadata.get(resume.id, user.id)

    assert healed.resume_id == resume.id
    assert healed.tags == []
    assert db.query(ResumeMetadata).count() == 1
    assert services.metadata.get(resume.id, user.id).id == healed.id


def test_ownership_follows_resume_chain(services, other_user, resume) -> None:
    with pytest.raises(AuthorizationError):
        services.metadata.get(resume.id, other_user.id)
    with pytest.raises(AuthorizationError):
        services.metadata.add_tag(resume.id, other_user.id, "python")
    with pytest.raises(NotFoundError):
        services.metadata.get("missing", other_user.id)


def test_update_notes_stores_verbatim_and_invalidates(services, cache, user, resume) -> None:
    services.metadata.get(resume.id, user.id)

    updated = services.metadata.update_notes(resume.id, user.id, "  spaced  ")
    assert updated.notes == "  spaced  "
    assert metadata_key(resume.id) not in cache
    assert services.metadata.get(resume.id, user.id).notes == "  spaced  "

    assert services.metadata.update_notes(resume.id, user.id, "").notes == ""
    assert services.metadata.update_notes(resume.id, user.id, None).notes is None


def test_update_notes_validation(services, user, resume) -> None:
    with pytest.raises(ValidationError) as exc:
        services.metadata.update_notes(resume.id, user.id, 42)
    assert exc.value.code == "InvalidNotes"

    with pytest.raises(ValidationError) as exc:
        services.metadata.update_notes(resume.id, user.id, "n" * 2001)
    assert exc.value.code == "NotesTooLong"

    assert len(services.metadata.update_notes(resume.id, user.id, "n" * 2000).notes) == 2000


def test_add_tag_trims_and_rejects_duplicates(services, user, resume) -> None:
    assert services.metadata.add_tag(resume.id, user.id, "  python ").tags == ["python"]

    with pytest.raises(ConflictError) as exc:
        services.metadata.add_tag(resume.id, user.id, "python")
    assert exc.value.code == "DuplicateTag"

    assert services.metadata.add_tag(resume.id, user.id, "Python").tags == ["python", "Python"]


@pytest.mark.parametrize(
    ("tag", "code"),
    [("   ", "InvalidTag"), (None, "InvalidTag"), (7, "InvalidTag"), ("t" * 51, "TagTooLong")],
)
def test_add_tag_validation(services, user, resume, tag, code: str) -> None:
    with pytest.raises(ValidationError) as exc:
        services.metadata.add_tag(resume.id, user.id, tag)
    assert exc.value.code == code


def test_add_tag_stops_at_twenty(services, user, resume) -> None:
    for index in range(20):
        services.metadata.add_tag(resume.id, user.id, f"tag{index}")

    with pytest.raises(ValidationError) as exc:
        services.metadata.add_tag(resume.id, user.id, "one-more")
    assert exc.value.code == "TooManyTags"
    assert len(services.metadata.get(resume.id, user.id).tags) == 20


def test_remove_tag_is_a_no_op_when_absent(services, user, resume) -> None:
    services.metadata.update_tags(resume.id, user.id, ["a", "b"])

    assert services.metadata.remove_tag(resume.id, user.id, "missing").tags == ["a", "b"]
    assert services.metadata.remove_tag(resume.id, user.id, "a").tags == ["b"]


def test_update_tags_is_strict(services, user, resume) -> None:
    assert services.metadata.update_tags(resume.id, user.id, [" go ", "rust"]).tags == ["go", "rust"]

    cases = [
        ("go", "InvalidTags"),
        (["ok", "  "], "InvalidTag"),
        (["ok", 5], "InvalidTag"),
        (["t" * 51], "TagTooLong"),
        ([f"t{index}" for index in range(21)], "TooManyTags"),
    ]
    for tags, code in cases:
        with pytest.raises(ValidationError) as exc:
            services.metadata.update_tags(resume.id, user.id, tags)
        assert exc.value.code == code

    assert services.metadata.get(resume.id, user.id).tags == ["go", "rust"]


def test_update_metadata_filters_tags_and_trims_notes(services, user, resume) -> None:
    updated = services.metadata.update_metadata(
        resume.id, user.id, {"notes": "  note  ", "tags": ["keep", "", "  ", None, 9, " also "]}
    )
    assert updated.notes == "note"
    assert updated.tags == ["keep", "also"]

    unchanged = services.metadata.update_metadata(resume.id, user.id, {})
    assert unchanged.notes == "note"
    assert unchanged.tags == ["keep", "also"]

    cleared = services.metadata.update_metadata(resume.id, user.id, {"notes": None})
    assert cleared.notes is None
    assert cleared.tags == ["keep", "also"]

    with pytest.raises(ValidationError) as exc:
        services.metadata.update_metadata(resume.id, user.id, {"tags": ["t" * 51]})
    assert exc.value.code == "TagTooLong"


def test_search_by_tag_is_exact_and_scoped(services, user, other_user, position, resume) -> None:
    second = services.resumes.create_online(position.id, user.id, "Second CV", "")
    services.metadata.add_tag(resume.id, user.id, "python")
    services.metadata.add_tag(second.id, user.id, "python-web")

    foreign_position = services.positions.create(other_user.id, "Foreign")
    foreign = services.resumes.create_online(foreign_position.id, other_user.id, "Bob CV", "")
    services.metadata.add_tag(foreign.id, other_user.id, "python")

    hits = services.metadata.search_by_tag(user.id, "python")

    assert [hit.resume.id for hit in hits] == [resume.id]
    assert hits[0].target_position.id == position.id
    assert hits[0].metadata.tags == ["python"]
    assert services.metadata.search_by_tag(user.id, "   ") == []


def test_cached_metadata_is_not_shared_with_callers(services, user, resume) -> None:
    services.metadata.add_tag(resume.id, user.id, "python")

    first = services.metadata.get(resume.id, user.id)
    first.tags.append("leaked")
    first.notes = "scribbled"

    second = services.metadata.get(resume.id, user.id)
    assert second.tags == ["python"]
    assert second.notes is None
