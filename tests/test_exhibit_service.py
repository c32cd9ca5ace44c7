"""Tests for exhibit numbering, exhibit lists and packages."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import page_text

from lexbates.app.exhibit_service import EXHIBIT_LIST_HEADER
from lexbates.bootstrap import ApplicationContainer
from lexbates.errors import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def new_exhibit(container: ApplicationContainer, case_id: str, register_pdf):
    """Factory creating an exhibit over a freshly registered PDF."""

    def _create(title: str, *, pages: int = 1, case: str | None = None) -> str:
        document_id = register_pdf(f"{title}.pdf", pages=pages)
        return container.exhibit_service.create(document_id, case or case_id, title=title).id

    return _create


def test_create_defaults_title_and_status(
    container: ApplicationContainer, case_id: str, register_pdf
) -> None:
    document_id = register_pdf("deposition.pdf")

    exhibit = container.exhibit_service.create(document_id, case_id)

    assert exhibit.title == "deposition.pdf"
    assert exhibit.status == "designated"
    assert exhibit.exhibit_number is None
    assert exhibit.created_by == "paralegal@example.com"


def test_create_validates_references(
    container: ApplicationContainer, case_id: str, register_pdf
) -> None:
    with pytest.raises(NotFoundError):
        container.exhibit_service.create("missing", case_id)
    with pytest.raises(NotFoundError):
        container.exhibit_service.create(register_pdf("a.pdf"), "no-such-case")
    with pytest.raises(ValidationError):
        container.exhibit_service.create(register_pdf("b.pdf"), case_id, status="lost")


def test_assign_draws_sticker_on_first_page(
    container: ApplicationContainer, new_exhibit
) -> None:
    exhibit_id = new_exhibit("Contract", pages=2)

    exhibit = container.exhibit_service.assign(exhibit_id, "12")

    assert exhibit.exhibit_number == "12"
    stickered = container.artifact_store.read(exhibit.exhibit_artifact_ref)
    assert "EXHIBIT 12" in page_text(stickered, 0)
    assert "EXHIBIT 12" not in page_text(stickered, 1)


def test_create_with_number_draws_sticker(
    container: ApplicationContainer, case_id: str, register_pdf
) -> None:
    document_id = register_pdf("invoice.pdf", pages=2)

    exhibit = container.exhibit_service.create(document_id, case_id, exhibit_number=" 7 ")

    assert exhibit.exhibit_number == "7"
    assert exhibit.exhibit_artifact_ref is not None
    stickered = container.artifact_store.read(exhibit.exhibit_artifact_ref)
    assert "EXHIBIT 7" in page_text(stickered, 0)
    assert "EXHIBIT 7" not in page_text(stickered, 1)
    assert container.exhibit_service.get(exhibit.id).exhibit_artifact_ref == (
        exhibit.exhibit_artifact_ref
    )

    with pytest.raises(ConflictError):
        container.exhibit_service.create(register_pdf("copy.pdf"), case_id, exhibit_number="7")


def test_sticker_is_drawn_over_the_bates_labeled_copy(
    container: ApplicationContainer, case_id: str, register_pdf
) -> None:
    document_id = register_pdf("letter.pdf")
    config_id = container.config_service.create("Production", case_id, prefix="ACME").id
    container.labeling_service.apply_label(document_id, config_id)
    exhibit = container.exhibit_service.create(document_id, case_id, title="Letter")

    assigned = container.exhibit_service.assign(exhibit.id, "PX-1")

    text = page_text(container.artifact_store.read(assigned.exhibit_artifact_ref), 0)
    assert "ACME00001" in text
    assert "EXHIBIT PX-1" in text


def test_exhibit_numbers_are_unique_within_a_case_only(
    container: ApplicationContainer, new_exhibit
) -> None:
    other_case = container.catalog_service.add_case("Other matter").id
    first = new_exhibit("First")
    second = new_exhibit("Second")
    elsewhere = new_exhibit("Elsewhere", case=other_case)

    container.exhibit_service.assign(first, "1")
    with pytest.raises(ConflictError):
        container.exhibit_service.assign(second, "1")
    assert container.exhibit_service.assign(elsewhere, "1").exhibit_number == "1"

    # Reassigning an exhibit its own number is allowed.
    assert container.exhibit_service.assign(first, "1").exhibit_number == "1"


def test_assign_requires_a_number(container: ApplicationContainer, new_exhibit) -> None:
    with pytest.raises(ValidationError):
        container.exhibit_service.assign(new_exhibit("Blank"), "   ")


def test_batch_assign_counter_advances_past_failures(
    container: ApplicationContainer, new_exhibit
) -> None:
    holder = new_exhibit("Holder")
    container.exhibit_service.assign(holder, "D-2")
    first = new_exhibit("First")
    clashing = new_exhibit("Clashing")
    last = new_exhibit("Last")

    results = container.exhibit_service.batch_assign(
        [first, clashing, "missing", last], 1, prefix="D-"
    )

    assert [item.exhibit_number for item in results] == ["D-1", "D-2", "D-3", "D-4"]
    assert [item.success for item in results] == [True, False, False, True]
    assert results[1].error == "conflict"
    assert results[2].error == "not_found"
    assert container.exhibit_service.get(clashing).exhibit_number is None


def test_batch_assign_validates_arguments(container: ApplicationContainer, new_exhibit) -> None:
    with pytest.raises(ValidationError):
        container.exhibit_service.batch_assign([], 1)
    with pytest.raises(ValidationError):
        container.exhibit_service.batch_assign([new_exhibit("Zero")], 0)


def test_exhibit_list_csv_uses_natural_order(
    container: ApplicationContainer, case_id: str, register_pdf, new_exhibit
) -> None:
    for title, number in (("Ten", "10"), ("Two", "2"), ("One", "1")):
        container.exhibit_service.assign(new_exhibit(title), number)
    document_id = register_pdf("pending.pdf")
    container.exhibit_service.create(
        document_id, case_id, title="Pending", description="Awaiting review"
    )

    csv_text = container.exhibit_service.generate_exhibit_list(case_id, format="csv")

    lines = csv_text.splitlines()
    assert lines[0] == ",".join(EXHIBIT_LIST_HEADER)
    assert lines[0] == "Exhibit Number,Title,Description,Bates Number,Status"
    assert [line.split(",")[0] for line in lines[1:]] == ["1", "2", "10", ""]
    assert lines[4] == ",Pending,Awaiting review,,designated"


def test_exhibit_list_json_includes_bates_number(
    container: ApplicationContainer, case_id: str, register_pdf
) -> None:
    document_id = register_pdf("memo.pdf")
    config_id = container.config_service.create("Production", case_id, prefix="TEST").id
    container.labeling_service.apply_label(document_id, config_id)
    exhibit = container.exhibit_service.create(document_id, case_id, title="Memo")

    rows = container.exhibit_service.generate_exhibit_list(case_id)

    assert rows == [
        {
            "exhibit_id": exhibit.id,
            "exhibit_number": "",
            "title": "Memo",
            "description": "",
            "bates_number": "TEST00001",
            "status": "designated",
            "document_id": document_id,
            "document_name": "memo.pdf",
        }
    ]


def test_status_updates_and_counts(
    container: ApplicationContainer, case_id: str, new_exhibit
) -> None:
    admitted = new_exhibit("Admitted")
    new_exhibit("Designated")
    container.exhibit_service.update_status(admitted, "admitted")

    with pytest.raises(ValidationError):
        container.exhibit_service.update_status(admitted, "misplaced")

    assert container.exhibit_service.status_counts(case_id) == {
        "designated": 1,
        "prepared": 0,
        "used": 0,
        "admitted": 1,
        "rejected": 0,
    }


def test_list_filters_and_paginates(
    container: ApplicationContainer, case_id: str, new_exhibit
) -> None:
    ids = [new_exhibit(f"Exhibit {n}") for n in range(3)]
    for offset, exhibit_id in enumerate(ids):
        container.exhibit_service.assign(exhibit_id, str(offset + 1))
    container.exhibit_service.update_status(ids[2], "used")

    page = container.exhibit_service.list(case_id=case_id, page=1, limit=2)
    assert page.total == 3
    assert page.total_pages == 2
    assert [exhibit.exhibit_number for exhibit in page.items] == ["1", "2"]

    used = container.exhibit_service.list(case_id=case_id, status="used")
    assert [exhibit.id for exhibit in used.items] == [ids[2]]


def test_delete_exhibit(container: ApplicationContainer, new_exhibit) -> None:
    exhibit_id = new_exhibit("Disposable")
    container.exhibit_service.delete(exhibit_id)

    with pytest.raises(NotFoundError):
        container.exhibit_service.get(exhibit_id)
    with pytest.raises(NotFoundError):
        container.exhibit_service.delete(exhibit_id)


def test_package_build_merges_exhibits_in_order(
    container: ApplicationContainer, case_id: str, temp_dir: Path, new_exhibit
) -> None:
    first = new_exhibit("First", pages=2)
    second = new_exhibit("Second", pages=1)
    container.exhibit_service.assign(first, "1")
    notes = temp_dir / "notes.txt"
    notes.write_text("witness notes\n", encoding="utf-8")
    text_document = container.catalog_service.register_document(notes, case_id).id
    text_exhibit = container.exhibit_service.create(text_document, case_id, title="Notes").id

    package = container.exhibit_service.create_package(
        "Trial binder", case_id, [first, second, text_exhibit], event_type="trial"
    )
    build = container.exhibit_service.build_package_pdf(package.id, watermark="CONFIDENTIAL")

    assert build.page_count == 3
    assert build.included_exhibit_ids == [first, second]
    assert build.skipped_exhibit_ids == [text_exhibit]
    assert build.watermark == "CONFIDENTIAL"
    merged = container.artifact_store.read(build.artifact_ref)
    assert "EXHIBIT 1" in page_text(merged, 0)
    assert "Second.pdf page 1" in page_text(merged, 2)


def test_package_creation_rules(
    container: ApplicationContainer, case_id: str, new_exhibit
) -> None:
    other_case = container.catalog_service.add_case("Other matter").id
    local = new_exhibit("Local")
    foreign = new_exhibit("Foreign", case=other_case)

    with pytest.raises(ValidationError):
        container.exhibit_service.create_package("", case_id, [local])
    with pytest.raises(ValidationError):
        container.exhibit_service.create_package("Binder", case_id, [])
    with pytest.raises(ValidationError):
        container.exhibit_service.create_package("Binder", case_id, [local, local])
    with pytest.raises(ValidationError):
        container.exhibit_service.create_package("Binder", case_id, [local, foreign])
    with pytest.raises(NotFoundError):
        container.exhibit_service.create_package("Binder", case_id, ["missing"])


def test_package_detail_reports_missing_exhibits(
    container: ApplicationContainer, case_id: str, new_exhibit
) -> None:
    kept = new_exhibit("Kept")
    removed = new_exhibit("Removed")
    package = container.exhibit_service.create_package("Hearing set", case_id, [kept, removed])
    container.exhibit_service.delete(removed)

    detail = container.exhibit_service.get_package(package.id)

    assert [exhibit.id for exhibit in detail.exhibits] == [kept]
    assert detail.missing_exhibit_ids == [removed]
