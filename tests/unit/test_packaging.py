"""
Tests for the Packaging Pipeline.

This test suite covers:
1. Manifest and README generation
2. Archive contents and naming
3. Download mode
4. Submission (refusal, upstream errors, success)
"""

import io
import json
import tempfile
import zipfile
from pathlib import Path

import httpx
import pytest

from practa.plugin.assets import AssetValidationResult
from practa.plugin.metadata import PractaMetadata
from practa.plugin.packaging import (
    PackagingError,
    PackagingPipeline,
    build_manifest,
    build_readme,
    component_identifier,
)
from practa.plugin.validation import ValidationReport, ValidationResult

SUBMIT_URL = "https://marketplace.test/api/upload"


def sample_metadata(**overrides) -> PractaMetadata:
    values = {
        "id": "breath-count",
        "name": "breath count",
        "description": "Count ten breaths",
        "author": "Tester",
        "version": "1.0.0",
        "estimated_duration": 60,
    }
    values.update(overrides)
    return PractaMetadata(**values)


def make_plugin(root: Path) -> Path:
    plugin_dir = root / "breath-count"
    (plugin_dir / "assets").mkdir(parents=True)
    (plugin_dir / "index.py").write_text("def component(context, on_complete, on_skip=None):\n    pass\n")
    (plugin_dir / "assets" / "bell.mp3").write_bytes(b"ding")
    (plugin_dir / "metadata.json").write_text('{"stale": true}')
    (plugin_dir / "__pycache__").mkdir()
    (plugin_dir / "__pycache__" / "index.cpython.pyc").write_bytes(b"\0")
    return plugin_dir


class RecordingHandler:
    """httpx.MockTransport handler that records requests."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


class TestGeneratedFiles:
    """Test manifest and README generation."""

    def test_manifest_defaults(self):
        manifest = build_manifest(sample_metadata())

        assert manifest["type"] == "widget"
        assert manifest["category"] == "wellbeing"
        assert manifest["tags"] == ["mindfulness", "wellbeing"]
        assert manifest["permissions"] == []
        assert manifest["estimatedDuration"] == 60

    def test_manifest_keeps_declared_category_and_tags(self):
        manifest = build_manifest(sample_metadata(category="focus", tags=["breath"]))

        assert manifest["category"] == "focus"
        assert manifest["tags"] == ["breath"]

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("breath count", "BreathCount"),
            ("My Practa!", "MyPracta"),
            ("3 minute sit", "Practa3MinuteSit"),
            ("", "Practa"),
        ],
    )
    def test_component_identifier(self, name, expected):
        assert component_identifier(name) == expected

    def test_readme_uses_identifier(self):
        readme = build_readme(sample_metadata())

        assert readme.startswith("# breath count")
        assert "from index import component as BreathCount" in readme
        assert "60 seconds" in readme

    def test_readme_with_free_text_duration(self):
        readme = build_readme(sample_metadata(estimated_duration="5 min"))
        assert "**Estimated duration:** 5 min" in readme

    def test_readme_without_duration(self):
        readme = build_readme(sample_metadata(estimated_duration=None))
        assert "**Estimated duration:** not specified" in readme


class TestArchive:
    """Test archive assembly."""

    def test_archive_filename(self):
        pipeline = PackagingPipeline(Path("."), sample_metadata(version="2.1.0"))
        assert pipeline.archive_filename == "breath-count-2.1.0.zip"

    def test_archive_contents(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            plugin_dir = make_plugin(Path(tmpdir))
            pipeline = PackagingPipeline(plugin_dir, sample_metadata())

            with zipfile.ZipFile(io.BytesIO(pipeline.build_archive_bytes())) as archive:
                names = set(archive.namelist())
                metadata = json.loads(archive.read("metadata.json"))
                manifest = json.loads(archive.read("manifest.json"))

            assert names == {
                "index.py",
                "assets/bell.mp3",
                "metadata.json",
                "manifest.json",
                "README.md",
            }
            # Generated metadata replaces the file on disk
            assert metadata["id"] == "breath-count"
            assert "stale" not in metadata
            assert manifest["type"] == "widget"

    def test_missing_plugin_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            pipeline = PackagingPipeline(Path(tmpdir) / "nope", sample_metadata())

            with pytest.raises(PackagingError, match="not found"):
                pipeline.build_archive_bytes()

    def test_download_archive(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            pipeline = PackagingPipeline(make_plugin(root), sample_metadata())

            target = pipeline.download_archive(root / "dist")

            assert target == root / "dist" / "breath-count-1.0.0.zip"
            assert zipfile.is_zipfile(target)

    def test_download_failure_removes_partial_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            pipeline = PackagingPipeline(root / "missing", sample_metadata())

            with pytest.raises(PackagingError):
                pipeline.download_archive(root / "dist")
            assert not (root / "dist" / "breath-count-1.0.0.zip").exists()

    def test_stream_archive(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            pipeline = PackagingPipeline(make_plugin(Path(tmpdir)), sample_metadata())
            buffer = io.BytesIO()

            filename = pipeline.stream_archive(buffer)

            assert filename == "breath-count-1.0.0.zip"
            assert zipfile.is_zipfile(io.BytesIO(buffer.getvalue()))


class TestSubmit:
    """Test marketplace submission."""

    @pytest.mark.asyncio
    async def test_invalid_audit_makes_no_request(self):
        """A failed asset audit blocks submission before any network call."""
        handler = RecordingHandler(httpx.Response(200, json={}))
        with tempfile.TemporaryDirectory() as tmpdir:
            pipeline = PackagingPipeline(
                make_plugin(Path(tmpdir)),
                sample_metadata(),
                submission_url=SUBMIT_URL,
                transport=httpx.MockTransport(handler),
            )
            audit = AssetValidationResult(valid=False, errors=["Asset 'bell' is missing"])

            result = await pipeline.submit(audit)

        assert not result.success
        assert result.status_code is None
        assert "Asset 'bell' is missing" in result.error
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_invalid_report_makes_no_request(self):
        handler = RecordingHandler(httpx.Response(200, json={}))
        with tempfile.TemporaryDirectory() as tmpdir:
            pipeline = PackagingPipeline(
                make_plugin(Path(tmpdir)),
                sample_metadata(),
                submission_url=SUBMIT_URL,
                transport=httpx.MockTransport(handler),
            )
            report = ValidationReport.from_results([ValidationResult.error("bad id")])

            result = await pipeline.submit(AssetValidationResult(), report)

        assert not result.success
        assert "bad id" in result.error
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_successful_submission(self):
        handler = RecordingHandler(httpx.Response(201, json={"id": "sub-1"}))
        with tempfile.TemporaryDirectory() as tmpdir:
            pipeline = PackagingPipeline(
                make_plugin(Path(tmpdir)),
                sample_metadata(),
                submission_url=SUBMIT_URL,
                transport=httpx.MockTransport(handler),
            )

            result = await pipeline.submit(AssetValidationResult())

        assert result.success
        assert result.status_code == 201
        assert result.data == {"id": "sub-1"}

        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == SUBMIT_URL
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'name="file"; filename="breath-count-1.0.0.zip"' in request.content
        assert b"application/zip" in request.content

    @pytest.mark.asyncio
    async def test_rejected_submission_passes_body_through(self):
        handler = RecordingHandler(httpx.Response(422, text="duplicate version"))
        with tempfile.TemporaryDirectory() as tmpdir:
            pipeline = PackagingPipeline(
                make_plugin(Path(tmpdir)),
                sample_metadata(),
                submission_url=SUBMIT_URL,
                transport=httpx.MockTransport(handler),
            )

            result = await pipeline.submit(AssetValidationResult())

        assert not result.success
        assert result.status_code == 422
        assert result.error == "duplicate version"

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with tempfile.TemporaryDirectory() as tmpdir:
            pipeline = PackagingPipeline(
                make_plugin(Path(tmpdir)),
                sample_metadata(),
                submission_url=SUBMIT_URL,
                transport=httpx.MockTransport(handler),
            )

            result = await pipeline.submit(AssetValidationResult())

        assert not result.success
        assert result.status_code is None
        assert "connection refused" in result.error

    @pytest.mark.asyncio
    async def test_free_text_duration_still_submits(self):
        handler = RecordingHandler(httpx.Response(201, json={}))
        with tempfile.TemporaryDirectory() as tmpdir:
            pipeline = PackagingPipeline(
                make_plugin(Path(tmpdir)),
                sample_metadata(estimated_duration="5 min"),
                submission_url=SUBMIT_URL,
                transport=httpx.MockTransport(handler),
            )

            result = await pipeline.submit(AssetValidationResult())

        assert result.success
        assert len(handler.requests) == 1
