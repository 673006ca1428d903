"""Integration tests for CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from codelayers import __version__
from codelayers.cli import app

runner = CliRunner()


@pytest.fixture
def indexed_project(sample_project_path: Path, temp_project_manager):
    """Index the sample project as 'Sample' and make it current."""
    result = runner.invoke(app, ["index", str(sample_project_path), "--name", "Sample"])
    assert result.exit_code == 0, result.stdout
    return "Sample"


class TestProjectCommands:
    """Tests for indexing and project management."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"codelayers v{__version__}" in result.stdout

    def test_index_project(self, sample_project_path: Path, temp_project_manager):
        result = runner.invoke(app, ["index", str(sample_project_path), "--name", "TestProj"])

        assert result.exit_code == 0
        assert "Indexed" in result.stdout
        assert "TestProj" in result.stdout
        assert "Files: 8 | Edges: 7 | External: 4" in result.stdout

    def test_index_nonexistent_path(self, temp_project_manager):
        result = runner.invoke(app, ["index", "/nonexistent/path"])
        assert result.exit_code != 0

    def test_index_with_bad_churn_file(self, sample_project_path: Path, temp_project_manager, temp_dir: Path):
        churn = temp_dir / "churn.json"
        churn.write_text('{"src/App.js": -3}', encoding="utf-8")

        result = runner.invoke(app, ["index", str(sample_project_path), "--churn", str(churn)])
        assert result.exit_code == 2

    def test_list_empty(self, temp_project_manager):
        result = runner.invoke(app, ["list-projects"])

        assert result.exit_code == 0
        assert "No projects indexed yet." in result.stdout

    def test_list_marks_current(self, indexed_project):
        result = runner.invoke(app, ["list-projects"])

        assert result.exit_code == 0
        assert "* Sample" in result.stdout

    def test_load_and_unload(self, indexed_project):
        result = runner.invoke(app, ["unload-project"])
        assert result.exit_code == 0
        assert "No project loaded" in runner.invoke(app, ["current-project"]).stdout

        result = runner.invoke(app, ["load-project", "Sample"])
        assert result.exit_code == 0
        assert "Loaded project 'Sample'." in result.stdout
        assert "Sample" in runner.invoke(app, ["current-project"]).stdout

    def test_load_nonexistent_project(self, temp_project_manager):
        result = runner.invoke(app, ["load-project", "DoesNotExist"])
        assert result.exit_code != 0

    def test_delete_project(self, indexed_project):
        result = runner.invoke(app, ["delete-project", "Sample"])

        assert result.exit_code == 0
        assert "Deleted project 'Sample'." in result.stdout
        assert "No projects indexed yet." in runner.invoke(app, ["list-projects"]).stdout

    def test_export_json(self, indexed_project, temp_dir: Path):
        output = temp_dir / "graph.json"
        result = runner.invoke(app, ["export-graph", "-f", "json", "-o", str(output)])

        assert result.exit_code == 0
        assert "Exported layer 1 (Orientation)" in result.stdout
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["layer"] == 1
        assert len(payload["nodes"]) == 8

    def test_export_dot_and_html(self, indexed_project, temp_dir: Path):
        dot = temp_dir / "graph.dot"
        page = temp_dir / "graph.html"

        assert runner.invoke(app, ["export-graph", "-f", "dot", "-o", str(dot)]).exit_code == 0
        assert runner.invoke(app, ["export-graph", "-f", "html", "-o", str(page)]).exit_code == 0
        assert dot.read_text(encoding="utf-8").startswith("digraph CodeLayers {")
        assert "<title>codelayers: Orientation</title>" in page.read_text(encoding="utf-8")

    def test_export_unknown_format(self, indexed_project):
        result = runner.invoke(app, ["export-graph", "-f", "svg"])
        assert result.exit_code != 0


class TestAnalyzeCommands:
    """Tests for the analyze command group."""

    def test_requires_loaded_project(self, temp_project_manager):
        result = runner.invoke(app, ["analyze", "cycles"])
        assert result.exit_code == 2

    def test_cycles(self, indexed_project):
        result = runner.invoke(app, ["analyze", "cycles"])

        assert result.exit_code == 0
        assert "Cycles: 1" in result.stdout
        assert "scripts/helpers.py -> scripts/report.py -> scripts/helpers.py" in result.stdout

    def test_most_used(self, indexed_project):
        result = runner.invoke(app, ["analyze", "most-used", "1"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "src/utils.js  imported by 2"

    def test_path(self, indexed_project):
        result = runner.invoke(app, ["analyze", "path", "src/index.js", "src/components/Header.js"])

        assert result.exit_code == 0
        assert "src/index.js -> src/App.js -> src/components/Header.js" in result.stdout

    def test_no_path(self, indexed_project):
        result = runner.invoke(app, ["analyze", "path", "src/utils.js", "src/index.js"])

        assert result.exit_code == 1
        assert "No import path" in result.stdout

    def test_unknown_node(self, indexed_project):
        result = runner.invoke(app, ["analyze", "impact", "src/missing.js"])
        assert result.exit_code == 2

    def test_impact(self, indexed_project):
        result = runner.invoke(app, ["analyze", "impact", "src/utils.js"])

        assert result.exit_code == 0
        assert "Impact score: 0.250" in result.stdout
        assert "Dependents (2):" in result.stdout
        assert "- src/index.js" in result.stdout

    def test_complexity(self, indexed_project):
        result = runner.invoke(app, ["analyze", "complexity"])

        assert result.exit_code == 0
        assert "Files: 8" in result.stdout
        assert "Max: 3" in result.stdout

    def test_centrality(self, indexed_project):
        result = runner.invoke(app, ["analyze", "centrality", "--top", "3"])

        assert result.exit_code == 0
        assert "src/utils.js" in result.stdout

    def test_insights(self, indexed_project):
        result = runner.invoke(app, ["analyze", "insights", "scripts/helpers.py"])

        assert result.exit_code == 0
        assert "External: json" in result.stdout


class TestLayerCommands:
    """Tests for the layers command group."""

    def test_show_default_layer(self, indexed_project):
        result = runner.invoke(app, ["layers", "show"])

        assert result.exit_code == 0
        assert "Layer 1: Orientation" in result.stdout
        assert "(locked)" not in result.stdout

    def test_show_json(self, indexed_project):
        result = runner.invoke(app, ["layers", "show", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["metadata"]["size_category"] == "small"
        assert payload["metadata"]["reveal_depth"] == 3

    def test_set_suggest_unlock_undo(self, indexed_project):
        result = runner.invoke(app, ["layers", "set", "3"])
        assert result.exit_code == 0
        assert "Layer 3: Impact & Risk (locked)" in result.stdout

        result = runner.invoke(app, ["layers", "suggest", "2"])
        assert "Layer is locked; suggestion ignored." in result.stdout
        assert "Layer 3: Impact & Risk (locked)" in result.stdout

        result = runner.invoke(app, ["layers", "unlock"])
        assert "Layer 3: Impact & Risk" in result.stdout
        assert "(locked)" not in result.stdout

        result = runner.invoke(app, ["layers", "suggest", "2"])
        assert "Layer 2: Structural" in result.stdout

        result = runner.invoke(app, ["layers", "undo"])
        assert result.exit_code == 0
        assert "Layer 1: Orientation" in result.stdout

    @pytest.mark.parametrize("layer", ["0", "5"])
    def test_set_out_of_range(self, indexed_project, layer):
        result = runner.invoke(app, ["layers", "set", layer])
        assert result.exit_code != 0

    def test_focus_and_clear(self, indexed_project):
        result = runner.invoke(app, ["layers", "focus", "src/App.js", "--layer", "2"])
        assert result.exit_code == 0
        assert "Layer 2: Structural (locked), focus src/App.js" in result.stdout

        result = runner.invoke(app, ["layers", "focus"])
        assert result.exit_code == 0
        assert "Focus cleared." in result.stdout
        assert "Layer 1: Orientation" in result.stdout

    def test_focus_unknown_unit(self, indexed_project):
        result = runner.invoke(app, ["layers", "focus", "folder:nowhere"])
        assert result.exit_code == 2

    def test_expand_file_unit(self, indexed_project):
        result = runner.invoke(app, ["layers", "expand", "src/App.js"])
        assert result.exit_code == 1

    def test_config(self):
        result = runner.invoke(app, ["layers", "config", "4"])

        assert result.exit_code == 0
        assert "Detail" in result.stdout
