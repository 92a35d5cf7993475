"""Tests for the transform pipeline and the JSON minifier."""

import json
from pathlib import Path
from typing import Callable

import pytest

from packsmith.builder.exceptions import SerializationError
from packsmith.builder.models import BuildProfile
from packsmith.builder.packaging.transforms import (
    TransformPipeline,
    TransformRegistry,
    default_registry,
    has_extension,
    minify_json,
    strip_json_comments,
)

from conftest import BP_MANIFEST


def _without_comments(text: str) -> object:
    return json.loads(
        "\n".join(
            line
            for line in text.splitlines()
            if not line.strip().startswith(("//", "/*"))
        )
    )


def test_strip_json_comments_keeps_strings_intact() -> None:
    text = '{"url": "http://x//y", "a": "/* not a comment */"} // trailing'
    assert json.loads(strip_json_comments(text)) == {
        "url": "http://x//y",
        "a": "/* not a comment */",
    }


def test_strip_json_comments_handles_escaped_quotes() -> None:
    text = '{"q": "say \\"hi\\" // still string"} /* gone */'
    assert json.loads(strip_json_comments(text)) == {"q": 'say "hi" // still string'}


def test_strip_json_comments_preserves_line_numbers() -> None:
    text = '/* one\ntwo */\n{"a": 1,}'
    with pytest.raises(json.JSONDecodeError) as excinfo:
        json.loads(strip_json_comments(text))
    assert excinfo.value.lineno == 3


def test_minify_json_preserves_value() -> None:
    minified = minify_json(BP_MANIFEST.encode(), Path("manifest.json"))

    assert b"\n" not in minified
    assert b" " not in minified.replace(b"Test Addon", b"")
    assert json.loads(minified) == _without_comments(BP_MANIFEST)


def test_minify_json_keeps_unicode_and_tolerates_bom() -> None:
    data = "\ufeff{ \"name\" : \"Épée ⚔\" }".encode("utf-8")
    assert minify_json(data, Path("a.json")) == '{"name":"Épée ⚔"}'.encode("utf-8")


@pytest.mark.parametrize(
    "data",
    [b"{ broken", b"\xff\xfe\x00", b'{"n": NaN}'],
    ids=["syntax", "encoding", "nan"],
)
def test_minify_json_failures_raise_serialization_error(data: bytes) -> None:
    with pytest.raises(SerializationError):
        minify_json(data, Path("bad.json"))


def test_registry_rejects_unknown_flag() -> None:
    registry = TransformRegistry()
    with pytest.raises(ValueError, match="Unknown transform flag"):
        registry.register("shrink", "x", has_extension(".json"), minify_json)


def test_registry_reports_unwired_flags() -> None:
    registry = default_registry()
    profile = BuildProfile(name="release", minify=True, obfuscate=True, encrypt=True)

    assert [hook.name for hook in registry.hooks_for(profile)] == ["json"]
    assert registry.unwired_flags(profile) == ["obfuscate", "encrypt"]


def test_pipeline_minifies_json_only(
    make_addon: Callable[..., Path], tree_bytes: Callable[[Path], dict[str, bytes]]
) -> None:
    root = make_addon()
    before = tree_bytes(root / "TestBP")

    report = TransformPipeline().run(root / "TestBP", BuildProfile(name="m", minify=True))

    after = tree_bytes(root / "TestBP")
    assert report.ok
    assert report.rewritten == [root / "TestBP" / "manifest.json"]
    assert json.loads(after["manifest.json"]) == _without_comments(BP_MANIFEST)
    assert after["pack_icon.png"] == before["pack_icon.png"]
    assert after["scripts/main.js"] == before["scripts/main.js"]


def test_pipeline_without_minify_leaves_bytes_untouched(
    make_addon: Callable[..., Path], tree_bytes: Callable[[Path], dict[str, bytes]]
) -> None:
    root = make_addon()
    before = tree_bytes(root)

    report = TransformPipeline().run(
        root / "TestBP", BuildProfile(name="p", package=True, dev_folder=True)
    )

    assert report.ok and not report.rewritten
    assert tree_bytes(root) == before


def test_pipeline_keeps_original_content_on_parse_failure(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_bytes(b'{"a": 1,, }')
    good = tmp_path / "good.json"
    good.write_text('{ "a" : 1 }')

    report = TransformPipeline().run(tmp_path, BuildProfile(name="m", minify=True))

    assert report.ok
    assert report.degraded == [broken]
    assert broken.read_bytes() == b'{"a": 1,, }'
    assert good.read_text() == '{"a":1}'


def test_pipeline_runs_custom_hooks_for_enabled_flags(tmp_path: Path) -> None:
    (tmp_path / "main.js").write_text("let value = 1;")
    (tmp_path / "data.json").write_text("{}")
    registry = TransformRegistry()
    registry.register(
        "obfuscate",
        "upper-js",
        has_extension(".js"),
        lambda data, path: data.upper(),
    )

    TransformPipeline(registry=registry).run(
        tmp_path, BuildProfile(name="o", obfuscate=True)
    )

    assert (tmp_path / "main.js").read_text() == "LET VALUE = 1;"
    assert (tmp_path / "data.json").read_text() == "{}"


def test_pipeline_aggregates_results_from_many_workers(tmp_path: Path) -> None:
    for index in range(50):
        (tmp_path / f"ok_{index}.json").write_text(f'{{ "i" : {index} }}')
        (tmp_path / f"bad_{index}.json").write_text("{ nope")

    report = TransformPipeline(max_workers=8).run(
        tmp_path, BuildProfile(name="m", minify=True)
    )

    assert len(report.rewritten) == 50
    assert len(report.degraded) == 50
    assert len(set(report.degraded)) == 50
    assert report.ok


def test_pipeline_reports_write_failures(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    target = tmp_path / "a.json"
    target.write_text('{ "a" : 1 }')

    def fail_write(self: Path, data: bytes) -> int:
        raise PermissionError("read-only")

    monkeypatch.setattr(Path, "write_bytes", fail_write)
    report = TransformPipeline().run(tmp_path, BuildProfile(name="m", minify=True))

    assert not report.ok
    assert report.failed == [target]


@pytest.mark.parametrize(
    "content",
    [
        '{"n": ' + "9" * 5000 + "}",
        "[" * 100000 + "]" * 100000,
    ],
    ids=["huge-integer", "deep-nesting"],
)
def test_pipeline_keeps_content_json_parser_cannot_handle(
    tmp_path: Path, content: str
) -> None:
    target = tmp_path / "data.json"
    target.write_text(content)

    report = TransformPipeline().run(tmp_path, BuildProfile(name="m", minify=True))

    assert report.ok
    assert report.degraded == [target]
    assert target.read_text() == content
