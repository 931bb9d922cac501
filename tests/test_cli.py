"""
Tests for the command-line interface.
"""

import json

import pytest
from click.testing import CliRunner

from conftest import fire_feature, write_geojson
from firesight.cli import main

INCIDENT_ARGS = [
    "--lat", "34.2", "--lon", "-118.5",
    "--fuel", "brush",
    "--wind-speed", "12", "--wind-dir", "45", "--humidity", "15",
    "--acres", "900",
]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(project_dir):
    return str(project_dir / "firesight.yaml")


def run_json(runner, args):
    result = runner.invoke(main, args + ["--json", "--quiet"])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestInit:
    def test_creates_template(self, runner, tmp_path):
        path = tmp_path / "firesight.yaml"
        result = runner.invoke(main, ["init", "-o", str(path), "--name", "demo"])

        assert result.exit_code == 0
        assert "name: demo" in path.read_text()

    def test_refuses_overwrite(self, runner, tmp_path):
        path = tmp_path / "firesight.yaml"
        path.write_text("keep me")

        result = runner.invoke(main, ["init", "-o", str(path)])
        assert result.exit_code == 1
        assert path.read_text() == "keep me"

        result = runner.invoke(main, ["init", "-o", str(path), "--force"])
        assert result.exit_code == 0


class TestPreprocess:
    def test_writes_artifact(self, runner, project_dir):
        output = project_dir / "processed.json"
        data = run_json(runner, ["preprocess", str(project_dir / "perimeters.geojson"), "-o", str(output)])

        assert data["stats"] == {"total": 6, "successful": 6, "skipped": 0, "failed": 0}
        with open(output) as f:
            assert len(json.load(f)["fires"]) == 6

    def test_duration_limit(self, runner, project_dir):
        output = project_dir / "processed.json"
        data = run_json(
            runner,
            ["preprocess", str(project_dir / "perimeters.geojson"), "-o", str(output), "--max-duration", "6"],
        )
        assert data["stats"]["skipped"] == 6
        assert data["skip_reasons"] == {"duration > max": 6}

    def test_reports_features_dropped_on_load(self, runner, tmp_path):
        no_shape = fire_feature(2, "NO SHAPE")
        no_shape["geometry"] = None
        path = write_geojson(tmp_path / "perimeters.geojson", [fire_feature(1, "ALPHA"), no_shape])

        data = run_json(runner, ["preprocess", str(path), "-o", str(tmp_path / "processed.json")])
        assert data["stats"] == {"total": 2, "successful": 1, "skipped": 1, "failed": 0}
        assert data["skip_reasons"] == {"missing geometry": 1}


class TestSearch:
    def test_by_name(self, runner, config_path):
        data = run_json(runner, ["search", config_path, "--name", "fire 3"])
        assert data["count"] == 1
        assert data["fires"][0]["fire_name"] == "FIRE 3"

    def test_by_year(self, runner, config_path):
        data = run_json(runner, ["search", config_path, "--year", "2012"])
        assert [f["fire_name"] for f in data["fires"]] == ["FIRE 2"]

    def test_by_location(self, runner, config_path):
        data = run_json(runner, ["search", config_path, "--lat", "34.2", "--lon", "-118.5", "--limit", "3"])
        distances = [f["distance_km"] for f in data["fires"]]
        assert len(distances) == 3
        assert distances == sorted(distances)

    def test_requires_criterion(self, runner, config_path):
        result = runner.invoke(main, ["search", config_path])
        assert result.exit_code == 1


class TestQueries:
    def test_predict(self, runner, config_path):
        data = run_json(runner, ["predict", config_path, "--lat", "34.2", "--lon", "-118.5", "--wind-dir", "45"])
        assert len(data["similar_fires"]) == 6
        assert data["prediction"]["confidence"] == "medium"

    def test_predict_human_output(self, runner, config_path):
        result = runner.invoke(
            main, ["predict", config_path, "--lat", "34.2", "--lon", "-118.5", "--wind-dir", "45", "--quiet"]
        )
        assert result.exit_code == 0
        assert "Likely direction:" in result.stdout

    def test_terrain(self, runner, config_path):
        data = run_json(runner, ["terrain", config_path, "--lat", "34.2", "--lon", "-118.5"])
        assert data["terrain"]["synthetic"] is True
        assert set(data["tactical_assessment"]) == {"advantages", "hazards"}

    def test_iap(self, runner, config_path):
        data = run_json(runner, ["iap", config_path, *INCIDENT_ARGS, "--category", "evacuation"])
        assert data["category"] == "evacuation"
        assert [i["iap_id"] for i in data["insights"]] == ["iap-1"]
        assert data["insights"][0]["relevance_score"] == 76

    def test_briefing(self, runner, config_path, tmp_path):
        output = tmp_path / "briefing.json"
        result = runner.invoke(main, ["briefing", config_path, *INCIDENT_ARGS, "-o", str(output), "--quiet"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert set(data["iap_insights"]) == {"tactics", "resources", "evacuation"}
        assert json.loads(output.read_text()) == data

    def test_missing_dataset_fails(self, runner, project_dir, config_path):
        (project_dir / "perimeters.geojson").unlink()
        result = runner.invoke(main, ["predict", config_path, "--lat", "34.2", "--lon", "-118.5",
                                      "--wind-dir", "45", "--quiet"])
        assert result.exit_code == 1
