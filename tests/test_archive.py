import sys
import os
import io
import tarfile
from pathlib import Path
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from conftest import make_targz

from chain_core.archive import RawFileWriter, TarArchiveExtractor, is_within_dir
from chain_core.errors import ExtractionFailed


def _tar_with(members):
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for info, content in members:
            tf.addfile(info, io.BytesIO(content) if content is not None else None)
    return buf.getvalue()


def _file(name, content):
    info = tarfile.TarInfo(name)
    info.size = len(content)
    return info, content


def test_extract_into_new_directory(tmp_path):
    stream = make_targz({"a.txt": b"alpha", "nested/b.txt": b"beta"})
    dest = tmp_path / "dest"
    assert TarArchiveExtractor().extract(stream, dest) == dest
    assert (dest / "a.txt").read_bytes() == b"alpha"
    assert (dest / "nested" / "b.txt").read_bytes() == b"beta"


def test_merge_into_existing_directory(tmp_path):
    dest = tmp_path / "dest"
    dest.mkdir()
    (dest / "old.txt").write_bytes(b"old")
    TarArchiveExtractor().extract(make_targz({"new.txt": b"new"}), dest)
    assert sorted(p.name for p in dest.iterdir()) == ["new.txt", "old.txt"]


def test_existing_name_clash_rejected(tmp_path):
    """Arquivo já existente no destino não é sobrescrito."""
    dest = tmp_path / "dest"
    dest.mkdir()
    (dest / "a.txt").write_bytes(b"keep me")
    with pytest.raises(ExtractionFailed, match="already contains"):
        TarArchiveExtractor().extract(make_targz({"a.txt": b"other"}), dest)
    assert (dest / "a.txt").read_bytes() == b"keep me"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["dest"]


@pytest.mark.parametrize("name", ["../evil.txt", "/etc/evil.txt", "ok/../../evil.txt"])
def test_path_traversal_rejected(tmp_path, name):
    """Entradas com traversal são rejeitadas e nada é escrito."""
    stream = _tar_with([_file("fine.txt", b"fine"), _file(name, b"evil")])
    dest = tmp_path / "dest"
    with pytest.raises(ExtractionFailed, match="Unsafe path"):
        TarArchiveExtractor().extract(stream, dest)
    assert not dest.exists()
    assert not (tmp_path / "evil.txt").exists()
    assert list(tmp_path.iterdir()) == []


def test_symlinks_are_skipped(tmp_path):
    link = tarfile.TarInfo("link")
    link.type = tarfile.SYMTYPE
    link.linkname = "/etc/passwd"
    stream = _tar_with([_file("a.txt", b"alpha"), (link, None)])
    dest = tmp_path / "dest"
    TarArchiveExtractor().extract(stream, dest)
    assert (dest / "a.txt").exists()
    assert not os.path.lexists(dest / "link")


def test_not_an_archive(tmp_path):
    with pytest.raises(ExtractionFailed):
        TarArchiveExtractor().extract(b"garbage!" * 10, tmp_path / "dest")
    assert list(tmp_path.iterdir()) == []


def test_destination_is_a_file(tmp_path):
    target = tmp_path / "file"
    target.write_bytes(b"x")
    with pytest.raises(ExtractionFailed, match="not a directory"):
        TarArchiveExtractor().extract(make_targz({"a": b"a"}), target)


def test_raw_writer(tmp_path):
    out = RawFileWriter().extract(b"payload", tmp_path / "sub" / "out.bin")
    assert out.read_bytes() == b"payload"


def test_raw_writer_refuses_directory(tmp_path):
    with pytest.raises(ExtractionFailed):
        RawFileWriter().extract(b"payload", tmp_path)


def test_is_within_dir(tmp_path):
    assert is_within_dir(tmp_path, tmp_path / "a" / "b")
    assert not is_within_dir(tmp_path / "a", tmp_path / "b")


def test_failed_merge_is_rolled_back(tmp_path, monkeypatch):
    """Falha no meio da fusão: entradas já movidas voltam e o destino fica intacto."""
    dest = tmp_path / "dest"
    dest.mkdir()
    (dest / "old.txt").write_bytes(b"old")
    stream = make_targz({"a.txt": b"alpha", "b.txt": b"beta", "c.txt": b"gamma"})

    real_replace = os.replace
    calls = []

    def flaky_replace(src, dst):
        dst = Path(dst)
        if dst.parent == dest:
            calls.append(dst.name)
            if len(calls) == 2:
                raise OSError("disk full")
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", flaky_replace)
    with pytest.raises(ExtractionFailed, match="disk full"):
        TarArchiveExtractor().extract(stream, dest)
    monkeypatch.undo()

    assert [p.name for p in dest.iterdir()] == ["old.txt"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["dest"]
