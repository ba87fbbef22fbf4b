from __future__ import annotations

import os
from pathlib import Path

import pytest

from dotkit.filesystem import (
    chmod_tree,
    copy_into_place,
    create_symlink,
    ensure_parent,
    file_mode,
    remove_path,
    symlink_points_to,
)


@pytest.mark.usefixtures("fake_home")
def test_create_symlink_replaces_existing_file(tmp_path: Path) -> None:
    source = tmp_path / "source.txt"
    source.write_text("hello\n")
    link = tmp_path / "deep" / "link.txt"
    ensure_parent(link)
    link.write_text("old\n")

    create_symlink(source, link)

    assert link.is_symlink()
    assert symlink_points_to(link, source)
    assert link.read_text() == "hello\n"


@pytest.mark.usefixtures("fake_home")
def test_symlink_points_to_relative_link(tmp_path: Path) -> None:
    target = tmp_path / "target.txt"
    target.write_text("content\n")
    link = tmp_path / "link.txt"
    link.symlink_to("target.txt")

    assert symlink_points_to(link, target)
    assert not symlink_points_to(link, tmp_path / "other.txt")
    assert not symlink_points_to(target, target)


@pytest.mark.usefixtures("fake_home")
def test_copy_into_place_replaces_symlink_with_directory(tmp_path: Path) -> None:
    source_dir = tmp_path / "src"
    (source_dir / "nested").mkdir(parents=True)
    (source_dir / "nested" / "file.txt").write_text("data\n")
    destination = tmp_path / "dst"
    destination.symlink_to(source_dir, target_is_directory=True)

    copy_into_place(source_dir, destination)

    assert destination.is_dir() and not destination.is_symlink()
    assert (destination / "nested" / "file.txt").read_text() == "data\n"
    assert not (tmp_path / ".dst.dotkit-tmp").exists()


@pytest.mark.usefixtures("fake_home")
def test_copy_into_place_keeps_destination_when_copy_fails(tmp_path: Path) -> None:
    destination = tmp_path / "dest.txt"
    destination.write_text("keep\n")

    with pytest.raises(OSError):
        copy_into_place(tmp_path / "missing.txt", destination)

    assert destination.read_text() == "keep\n"
    assert not (tmp_path / ".dest.txt.dotkit-tmp").exists()


@pytest.mark.usefixtures("fake_home")
def test_remove_path_handles_every_kind(tmp_path: Path) -> None:
    file_path = tmp_path / "file.txt"
    file_path.write_text("data\n")
    dir_path = tmp_path / "dir"
    (dir_path / "child").mkdir(parents=True)
    dangling = tmp_path / "dangling"
    dangling.symlink_to(tmp_path / "nowhere")

    for path in (file_path, dir_path, dangling, tmp_path / "never-existed"):
        remove_path(path)
        assert not path.exists() and not path.is_symlink()


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_chmod_tree_skips_symlinks(tmp_path: Path) -> None:
    outside = tmp_path / "outside.txt"
    outside.write_text("")
    outside.chmod(0o644)
    directory = tmp_path / "secret"
    (directory / "sub").mkdir(parents=True)
    (directory / "sub" / "key").write_text("")
    (directory / "link").symlink_to(outside)

    chmod_tree(directory, 0o700)

    assert file_mode(directory) == 0o700
    assert file_mode(directory / "sub") == 0o700
    assert file_mode(directory / "sub" / "key") == 0o700
    assert file_mode(outside) == 0o644
