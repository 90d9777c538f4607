"""
tests/core/output/test_output_writer.py - 결과 파일 저장 테스트
"""

import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from core.inventory import ResourceKind, ResourceRecord
from core.output import ResultWriter, artifact_name, sanitize_name


def _record(ou_name="Prod", payload=None, kind=ResourceKind.S3):
    return ResourceRecord(
        account_id="111111111111",
        ou_name=ou_name,
        org_id="o-abc123",
        resource_kind=kind,
        payload=payload if payload is not None else {"Buckets": [{"Name": "b1"}]},
    )


class TestArtifactName:
    """결과 파일명"""

    def test_format(self):
        assert artifact_name("o-abc123", "Prod", "111111111111", "s3") == "o-abc123_Prod_111111111111_s3.json"

    def test_root_accounts(self):
        assert artifact_name("o-abc123", "root", "999999999999", "iam") == "o-abc123_root_999999999999_iam.json"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Prod", "Prod"),
            ("Team A/B", "Team_A_B"),
            ("개발", "__"),
            ("a.b-c_d", "a.b-c_d"),
            ("", "_"),
        ],
    )
    def test_sanitize_name(self, raw, expected):
        assert sanitize_name(raw) == expected


class TestResultWriter:
    """ResultWriter.write"""

    def test_writes_indented_json(self, tmp_path):
        writer = ResultWriter(tmp_path / "out")

        path = writer.write(_record())

        assert path.name == "o-abc123_Prod_111111111111_s3.json"
        text = path.read_text(encoding="utf-8")
        assert json.loads(text) == {"Buckets": [{"Name": "b1"}]}
        assert text.startswith("{\n  ")

    def test_datetime_serialized_as_string(self, tmp_path):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        writer = ResultWriter(tmp_path)

        path = writer.write(_record(payload={"Buckets": [{"Name": "b1", "CreationDate": created}]}))

        assert json.loads(path.read_text())["Buckets"][0]["CreationDate"] == str(created)

    def test_overwrites_existing_file(self, tmp_path):
        writer = ResultWriter(tmp_path)
        writer.write(_record(payload={"Buckets": [{"Name": "old"}]}))

        path = writer.write(_record(payload={"Buckets": [{"Name": "new"}]}))

        assert json.loads(path.read_text())["Buckets"][0]["Name"] == "new"
        assert [p.name for p in tmp_path.iterdir()] == [path.name]

    def test_sanitizes_ou_name(self, tmp_path):
        path = ResultWriter(tmp_path).write(_record(ou_name="Shared Services"))

        assert path.name == "o-abc123_Shared_Services_111111111111_s3.json"

    def test_failed_write_leaves_no_partial_file(self, tmp_path):
        writer = ResultWriter(tmp_path)

        with patch("core.output.writer.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                writer.write(_record())

        assert list(tmp_path.iterdir()) == []
