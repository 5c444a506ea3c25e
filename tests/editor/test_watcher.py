import asyncio
import os
from unittest.mock import MagicMock, patch

from watchfiles import Change

from pyhalo.editor import FileWatcher, create_session
from pyhalo.utils.enums import StatusKind


RED = """
@fragment
fn fs_main(frag: VertexOutput) -> @location(0) vec4<f32> {
    return vec4<f32>(1.0, 0.0, 0.0, 1.0);
}
"""


async def empty_changes():
    """Never yields, just blocks until cancelled."""
    try:
        await asyncio.sleep(3600)
    except asyncio.CancelledError:
        return
    yield  # make it an async generator


async def changes_then_block(*batches):
    """Yields the given batches of changes, then blocks."""
    for changes in batches:
        yield changes
    try:
        await asyncio.sleep(3600)
    except asyncio.CancelledError:
        return


def write(path, text):
    with open(path, "wb") as f:
        f.write(text.encode("utf-8"))


def run_watcher(watcher, awatch_result):
    async def main():
        with patch("pyhalo.editor.watcher.awatch") as awatch:
            awatch.return_value = awatch_result
            await watcher.start()
            await asyncio.sleep(0.05)
            await watcher.stop()
        return awatch

    return asyncio.run(main())


def test_start_stop():
    watcher = FileWatcher("/tmp/shader.wgsl", MagicMock())

    async def main():
        with patch("pyhalo.editor.watcher.awatch") as awatch:
            awatch.return_value = empty_changes()
            await watcher.start()
            task = watcher._task
            assert task is not None
            await watcher.start()
            assert watcher._task is task
            await watcher.stop()
            assert watcher._task is None
        await watcher.stop()  # no-op

    asyncio.run(main())


def test_watches_parent_directory(tmp_path):
    path = tmp_path / "shader.wgsl"
    write(path, RED)
    watcher = FileWatcher(str(path), MagicMock())
    awatch = run_watcher(watcher, empty_changes())
    awatch.assert_called_once_with(os.path.realpath(tmp_path))


def test_change_to_file_calls_back(tmp_path):
    path = tmp_path / "shader.wgsl"
    write(path, RED)
    on_text = MagicMock()
    watcher = FileWatcher(str(path), on_text)

    changes = {(Change.modified, str(path)), (Change.added, str(tmp_path / "x.txt"))}
    run_watcher(watcher, changes_then_block(changes))
    on_text.assert_called_once_with(RED)


def test_change_to_other_files_is_ignored(tmp_path):
    path = tmp_path / "shader.wgsl"
    write(path, RED)
    on_text = MagicMock()
    watcher = FileWatcher(str(path), on_text)

    changes = {(Change.modified, str(tmp_path / "other.wgsl"))}
    run_watcher(watcher, changes_then_block(changes))
    on_text.assert_not_called()


def test_unchanged_text_is_not_passed_twice(tmp_path):
    path = tmp_path / "shader.wgsl"
    write(path, RED)
    on_text = MagicMock()
    watcher = FileWatcher(str(path), on_text)

    changes = {(Change.modified, str(path))}
    run_watcher(watcher, changes_then_block(changes, changes))
    assert on_text.call_count == 1


def test_removed_file_is_skipped(tmp_path):
    path = tmp_path / "shader.wgsl"
    on_text = MagicMock()
    watcher = FileWatcher(str(path), on_text)

    changes = {(Change.deleted, str(path))}
    run_watcher(watcher, changes_then_block(changes))
    on_text.assert_not_called()


def test_callback_error_keeps_watching(tmp_path):
    path = tmp_path / "shader.wgsl"
    write(path, RED)
    texts = []

    def on_text(text):
        texts.append(text)
        raise RuntimeError("oops")

    watcher = FileWatcher(str(path), on_text)
    changes = {(Change.modified, str(path))}

    async def main():
        with patch("pyhalo.editor.watcher.awatch") as awatch:
            awatch.return_value = changes_then_block(changes)
            await watcher.start()
            await asyncio.sleep(0.05)
            assert not watcher._task.done()
            await watcher.stop()

    asyncio.run(main())
    assert texts == [RED]


def test_watcher_feeds_session(tmp_path):
    path = tmp_path / "shader.wgsl"
    write(path, RED)
    session = create_session()
    watcher = FileWatcher(str(path), session.edit)

    async def main():
        with patch("pyhalo.editor.watcher.awatch") as awatch:
            awatch.return_value = changes_then_block({(Change.modified, str(path))})
            await watcher.start()
            while session.slot.version == 0:
                await asyncio.sleep(0.01)
            await watcher.stop()

    asyncio.run(main())
    assert session.text == RED
    assert session.status.kind == StatusKind.validated
    assert session.slot.current.artifact.source == RED
