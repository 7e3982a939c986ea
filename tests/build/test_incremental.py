"""
Tests for the incremental build manifest
"""
import json
import os
import time

import pytest

from statemachine_codegen.build.incremental import (
    MANIFEST_VERSION, IncrementalBuildManager, check_for_updates, file_hash,
)


@pytest.fixture
def sources(tmp_path):
    first = tmp_path / 'menu.md'
    second = tmp_path / 'router.md'
    first.write_text('flowchart TD\nA --> B\n')
    second.write_text('flowchart TD\nC --> D\n')
    return [str(first), str(second)]


@pytest.fixture
def generated_file(tmp_path):
    path = tmp_path / 'out' / 'menu_machine.py'
    path.parent.mkdir()
    path.write_text('MACHINE_ID = "menuMachine"\n')
    return str(path)


@pytest.fixture
def manifest_path(tmp_path):
    return tmp_path / 'out' / '.generation-manifest.json'


def touch_future(path, seconds=60):
    """Move a file's modification time into the future"""
    future = time.time() + seconds
    os.utime(path, (future, future))


def test_empty_manifest_reports_all_new(sources, manifest_path):
    """Without a manifest every source is new"""
    manager = IncrementalBuildManager(manifest_path)

    changes = manager.detect_changes(sources)

    assert changes.has_changes
    assert changes.new == sources
    assert changes.changed == sources
    assert changes.modified == []
    assert manager.is_up_to_date(sources) is False


def test_commit_then_unchanged(sources, generated_file, manifest_path):
    """After a commit, unchanged sources need no regeneration"""
    manager = IncrementalBuildManager(manifest_path)
    manager.commit(sources, [generated_file])

    reloaded = IncrementalBuildManager(manifest_path)

    assert reloaded.is_up_to_date(sources)
    assert not reloaded.detect_changes(sources).has_changes
    assert reloaded.files_needing_regeneration(sources) == []


def test_missing_generated_file_is_out_of_date(sources, generated_file, manifest_path):
    """Identical sources but a deleted output: not up to date"""
    manager = IncrementalBuildManager(manifest_path)
    manager.commit(sources, [generated_file])
    os.remove(generated_file)

    reloaded = IncrementalBuildManager(manifest_path)

    assert not reloaded.detect_changes(sources).has_changes
    assert reloaded.is_up_to_date(sources) is False


def test_content_change_detected(sources, manifest_path):
    """Editing a source flips is_up_to_date and marks it modified"""
    manager = IncrementalBuildManager(manifest_path)
    manager.commit(sources)
    assert manager.is_up_to_date(sources)

    with open(sources[0], 'a') as f:
        f.write('B --> C\n')
    touch_future(sources[0])

    changes = manager.detect_changes(sources)
    assert changes.modified == [sources[0]]
    assert changes.new == []
    assert manager.is_up_to_date(sources) is False


def test_deleted_source_detected(sources, manifest_path):
    manager = IncrementalBuildManager(manifest_path)
    manager.commit(sources)

    changes = manager.detect_changes(sources[:1])

    assert changes.has_changes
    assert changes.deleted == [sources[1]]
    assert changes.changed == []


def test_unreadable_source_paths_count_as_changed(sources, manifest_path, tmp_path):
    """Missing files and directories never look up to date"""
    manager = IncrementalBuildManager(manifest_path)
    manager.commit(sources)
    missing = str(tmp_path / 'nope.md')

    changes = manager.detect_changes(sources + [missing, str(tmp_path)])

    assert changes.has_changes
    assert changes.unreadable == [missing, str(tmp_path)]
    assert manager.is_up_to_date(sources + [missing]) is False


def test_commit_ignores_directories(sources, manifest_path, tmp_path):
    manager = IncrementalBuildManager(manifest_path)

    manager.commit(sources + [str(tmp_path)], [str(tmp_path)])

    assert sorted(manager.manifest.source_files) == sorted(sources)
    assert manager.manifest.generated_files == {}


def test_commit_replaces_sources_and_merges_generated(sources, generated_file, manifest_path, tmp_path):
    other = tmp_path / 'out' / 'other.py'
    other.write_text('x = 1\n')
    manager = IncrementalBuildManager(manifest_path)

    manager.commit(sources, [generated_file])
    manager.commit(sources[:1], [str(other)])

    data = json.loads(manifest_path.read_text())
    assert list(data['sourceFiles']) == sources[:1]
    assert sorted(data['generatedFiles']) == sorted([generated_file, str(other)])
    assert data['version'] == MANIFEST_VERSION
    assert data['lastUpdate'] > 0
    record = data['sourceFiles'][sources[0]]
    assert record['hash'] == file_hash(sources[0])
    assert set(record) == {'path', 'hash', 'mtime', 'size'}


def test_corrupt_manifest_treated_as_empty(sources, manifest_path):
    """An unreadable manifest is never fatal"""
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    manifest_path.write_text('{not json')

    manager = IncrementalBuildManager(manifest_path)

    assert manager.manifest.version == MANIFEST_VERSION
    assert manager.manifest.source_files == {}
    assert manager.detect_changes(sources).new == sources


def test_non_object_manifest_treated_as_empty(manifest_path):
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    manifest_path.write_text('[1, 2, 3]')

    assert IncrementalBuildManager(manifest_path).statistics()['source_files'] == 0


def test_statistics_reset_and_export(sources, generated_file, manifest_path):
    manager = IncrementalBuildManager(manifest_path)
    manager.commit(sources, [generated_file])

    stats = manager.statistics()
    assert stats['source_files'] == 2
    assert stats['generated_files'] == 1
    assert stats['last_update'] > 0
    assert stats['manifest_size'] > 0
    assert set(manager.export_manifest()) == {'version', 'lastUpdate', 'sourceFiles', 'generatedFiles'}

    manager.reset()

    assert IncrementalBuildManager(manifest_path).statistics()['source_files'] == 0
    assert manager.detect_changes(sources).new == sources


def test_check_for_updates(sources, manifest_path):
    assert check_for_updates(sources, manifest_path).changed == sources
