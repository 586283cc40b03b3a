"""Tests for the gitsim.session() factory function."""

import shutil
import tempfile

import pytest

from gitsim import Session, session
from gitsim.kv.disk import Disk
from gitsim.kv.memory import Memory


class TestSessionFactory:
    def test_default_is_memory(self):
        s = session()
        assert isinstance(s, Session)
        assert isinstance(s.store, Memory)

    def test_invalid_storage(self):
        with pytest.raises(ValueError, match="Unknown storage"):
            session(storage="redis")

    def test_disk_requires_path(self):
        with pytest.raises(ValueError, match="path is required"):
            session(storage="disk")

    def test_limits_are_passed_through(self):
        s = session(max_undo=3, max_commands=4)
        assert s.max_undo == 3
        assert s.max_commands == 4

    def test_name(self):
        assert session(name="alice").name == "alice"


class TestSessionFactoryDisk:
    @pytest.fixture
    def tmpdir(self):
        path = tempfile.mkdtemp()
        yield path
        shutil.rmtree(path, ignore_errors=True)

    def test_disk_backend(self, tmpdir):
        s = session(storage="disk", path=tmpdir)
        assert isinstance(s.store, Disk)
        s.store.close()

    def test_reopen_resumes(self, tmpdir):
        s = session(storage="disk", path=tmpdir)
        assert s.run('git commit -m "Saved"')
        s.store.close()

        again = session(storage="disk", path=tmpdir)
        assert again.snapshot.commits[-1].message == "Saved"
        assert again.commands == ['git commit -m "Saved"']
        assert again.can_undo
        again.store.close()

    def test_names_are_isolated(self, tmpdir):
        a = session(storage="disk", path=tmpdir, name="a")
        a.run('git commit -m "only in a"')
        a.store.close()

        b = session(storage="disk", path=tmpdir, name="b")
        assert len(b.snapshot.commits) == 1
        b.store.close()
