from __future__ import annotations

from kvreplay_core.domain.diagnostics import PrefixHit, detect_collision
from kvreplay_core.models import Batch, Delete, DeletePrefix, Put


def test_detect_collision_counts_sets_and_overlap() -> None:
    batch = Batch(
        (
            Put(key=b"\x01\x02", value=b"\x09"),
            Put(key=b"\x01\x02", value=b"\x08"),
            Put(key=b"\x02", value=b"\x09"),
            Delete(key=b"\x01\x02"),
            Delete(key=b"\x07"),
            DeletePrefix(prefix=b"\x01"),
        )
    )

    report = detect_collision(batch)

    assert report.n_puts == 2
    assert report.n_deletes == 2
    assert report.n_prefix_deletes == 1
    assert report.n_put_delete_overlap == 1
    assert report.prefix_hits == [PrefixHit(prefix=b"\x01", n_covered_puts=1)]
    assert report.has_collision


def test_detect_collision_prefix_hits_use_prefix_ranges() -> None:
    batch = Batch(
        (
            Put(key=b"\xff", value=b"\x01"),
            Put(key=b"\xff\x00", value=b"\x01"),
            Put(key=b"\xfe\xff", value=b"\x01"),
            DeletePrefix(prefix=b"\xff"),
            DeletePrefix(prefix=b"\x09"),
            DeletePrefix(prefix=b""),
        )
    )

    report = detect_collision(batch)

    hits = {hit.prefix: hit.n_covered_puts for hit in report.prefix_hits}
    assert hits == {b"": 3, b"\x09": 0, b"\xff": 2}
    assert report.n_prefix_covered_puts == 5


def test_collision_report_lines() -> None:
    batch = Batch((Put(key=b"\x01", value=b"\x01"), DeletePrefix(prefix=b"\x01\x02")))

    lines = detect_collision(batch).lines()

    assert lines == [
        "|key_puts|=1",
        "|key_deletes|=0",
        "|key_prefix_deletes|=1",
        "|key_puts int key_deletes|=0",
        "|key_prefix|=2 |key_list|=0",
    ]


def test_detect_collision_on_clean_batch() -> None:
    report = detect_collision(Batch((Put(key=b"\x01", value=b"\x01"), Delete(key=b"\x02"))))
    assert not report.has_collision
    assert report.prefix_hits == []
