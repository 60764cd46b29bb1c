"""
Tests for the sort engine
"""

import errno
import shutil

import pytest

from sortify.engine import EventKind, FileEvent, SortEngine
from sortify.rules import LiveRules, RuleSet, SortingRule


@pytest.fixture
def root(tmp_path):
    folder = tmp_path / "Downloads"
    folder.mkdir()
    return folder


@pytest.fixture
def pdf_rules():
    return RuleSet(enabled=True, rules=[SortingRule(".pdf", "Documents")])


def make_file(path, content="data"):
    path.write_text(content)
    return path


class TestOnFileEvent:
    """Test cases for SortEngine.on_file_event"""

    def test_moves_into_new_folder(self, root, pdf_rules):
        """End to end: invoice.pdf lands in a freshly created Documents/"""
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / "invoice.pdf")

        dest = engine.on_file_event(source)

        assert dest == root / "Documents" / "invoice.pdf"
        assert (root / "Documents").is_dir()
        assert dest.read_text() == "data"
        assert not source.exists()

    def test_uppercase_extension(self, root, pdf_rules):
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / "SCAN.PDF")

        dest = engine.on_file_event(source)

        assert dest == root / "Documents" / "SCAN.PDF"

    def test_collision_gets_counter(self, root, pdf_rules):
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        docs = root / "Documents"
        docs.mkdir()
        make_file(docs / "report.pdf", "first")
        make_file(docs / "report (1).pdf", "second")
        source = make_file(root / "report.pdf", "third")

        dest = engine.on_file_event(source)

        assert dest == docs / "report (2).pdf"
        assert (docs / "report.pdf").read_text() == "first"
        assert (docs / "report (1).pdf").read_text() == "second"
        assert dest.read_text() == "third"

    def test_unmatched_extension_untouched(self, root, pdf_rules):
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / "data.xyz")

        assert engine.on_file_event(source) is None
        assert source.exists()
        assert [p.name for p in root.iterdir()] == ["data.xyz"]

    def test_no_extension_untouched(self, root, pdf_rules):
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / "README")

        assert engine.on_file_event(source) is None
        assert source.exists()

    def test_vanished_file(self, root, pdf_rules):
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)

        assert engine.on_file_event(root / "gone.pdf") is None
        assert list(root.iterdir()) == []

    def test_directory_ignored(self, root, pdf_rules):
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        (root / "folder.pdf").mkdir()

        assert engine.on_file_event(root / "folder.pdf") is None
        assert not (root / "Documents").exists()

    def test_disabled_does_nothing(self, root, pdf_rules):
        engine = SortEngine(root, pdf_rules.with_enabled(False), lock_grace_period=0)
        files = [make_file(root / f"file{i}.pdf") for i in range(3)]

        for f in files:
            assert engine.on_file_event(f) is None

        assert all(f.exists() for f in files)
        assert not (root / "Documents").exists()

    def test_toggle_applies_to_next_event(self, root, pdf_rules):
        live = LiveRules(pdf_rules.with_enabled(False))
        engine = SortEngine(root, live, lock_grace_period=0)
        source = make_file(root / "a.pdf")

        assert engine.on_file_event(source) is None
        live.set_enabled(True)
        assert engine.on_file_event(source) == root / "Documents" / "a.pdf"

    def test_folder_creation_failure(self, root, pdf_rules):
        """A file squatting on the folder name abandons the event"""
        make_file(root / "Documents", "not a folder")
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / "invoice.pdf")

        assert engine.on_file_event(source) is None
        assert source.exists()
        assert (root / "Documents").read_text() == "not a folder"

    def test_nested_folder_name(self, root):
        rules = RuleSet(rules=[SortingRule(".zip", "Archives/Zip")])
        engine = SortEngine(root, rules, lock_grace_period=0)
        source = make_file(root / "bundle.zip")

        assert engine.on_file_event(source) == root / "Archives" / "Zip" / "bundle.zip"

    def test_dot_name_is_its_own_extension(self, root, pdf_rules):
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / ".pdf")

        assert engine.on_file_event(source) == root / "Documents" / ".pdf"
        assert not source.exists()

    def test_dot_name_collision(self, root, pdf_rules):
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        docs = root / "Documents"
        docs.mkdir()
        make_file(docs / ".pdf", "first")
        source = make_file(root / ".pdf", "second")

        assert engine.on_file_event(source) == docs / " (1).pdf"
        assert (docs / ".pdf").read_text() == "first"

    def test_name_too_long_for_counter(self, root, pdf_rules):
        """No room for " (1)" in the name: the event is dropped, not raised"""
        name = "a" * 251 + ".pdf"
        docs = root / "Documents"
        docs.mkdir()
        make_file(docs / name)
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / name)

        assert engine.on_file_event(source) is None
        assert source.exists()

    def test_naming_failure_is_contained(self, root, pdf_rules, monkeypatch):
        def denied(destination):
            raise PermissionError(errno.EACCES, "Permission denied", str(destination))

        monkeypatch.setattr("sortify.engine.utils.get_unique_path", denied)
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / "invoice.pdf")

        assert engine.on_file_event(source) is None
        assert source.exists()

    def test_locked_file_left_in_place(self, root, pdf_rules, monkeypatch):
        def locked_move(src, dst):
            raise OSError(errno.EBUSY, "Device or resource busy", src)

        monkeypatch.setattr(shutil, "move", locked_move)
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / "download.pdf")

        assert engine.on_file_event(source) is None
        assert source.exists()

    def test_move_failure_is_contained(self, root, pdf_rules, monkeypatch):
        def full_disk(src, dst):
            raise OSError(errno.ENOSPC, "No space left on device", dst)

        monkeypatch.setattr(shutil, "move", full_disk)
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        source = make_file(root / "big.pdf")

        assert engine.on_file_event(source) is None
        assert source.exists()

    def test_grace_period_waits_before_move(self, root, pdf_rules, monkeypatch):
        waits = []
        monkeypatch.setattr("sortify.engine.time.sleep", waits.append)
        engine = SortEngine(root, pdf_rules, lock_grace_period=0.5)
        source = make_file(root / "slow.pdf")

        engine.on_file_event(source)

        assert waits == [0.5]

    def test_replaced_rules_used(self, root, pdf_rules):
        live = LiveRules(pdf_rules)
        engine = SortEngine(root, live, lock_grace_period=0)
        live.replace([SortingRule(".pdf", "Papers")], True)
        source = make_file(root / "paper.pdf")

        assert engine.on_file_event(source) == root / "Papers" / "paper.pdf"


class TestRun:
    """Test cases for SortEngine.run"""

    def test_create_then_rename_pair(self, root, pdf_rules):
        """Both events of a download rename survive the existence check"""
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        partial = make_file(root / "book.pdf.crdownload")
        final = root / "book.pdf"
        partial.rename(final)

        moved = engine.run([
            FileEvent(EventKind.CREATED, partial),
            FileEvent(EventKind.RENAMED, final),
            FileEvent(EventKind.CREATED, final),
        ])

        assert moved == 1
        assert (root / "Documents" / "book.pdf").exists()
        assert not final.exists()

    def test_failure_does_not_stop_loop(self, root, pdf_rules, monkeypatch):
        calls = []
        real_move = shutil.move

        def flaky_move(src, dst):
            calls.append(src)
            if len(calls) == 1:
                raise PermissionError(errno.EACCES, "Permission denied", src)
            return real_move(src, dst)

        monkeypatch.setattr(shutil, "move", flaky_move)
        engine = SortEngine(root, pdf_rules, lock_grace_period=0)
        first = make_file(root / "first.pdf")
        second = make_file(root / "second.pdf")

        moved = engine.run([
            FileEvent(EventKind.CREATED, first),
            FileEvent(EventKind.CREATED, second),
        ])

        assert moved == 1
        assert first.exists()
        assert (root / "Documents" / "second.pdf").exists()

    def test_default_rules_when_none_given(self, root):
        engine = SortEngine(root, lock_grace_period=0)
        source = make_file(root / "photo.JPG")

        assert engine.run([FileEvent(EventKind.CREATED, source)]) == 1
        assert (root / "Images" / "photo.JPG").exists()
