"""Test the command-line driver."""

import json

import pytest

from kintree.main import main


@pytest.fixture
def family_file(tmp_path, couple_store):
    """Couple store written to a JSON file."""
    path = tmp_path / "family.json"
    path.write_text(json.dumps(couple_store.to_dict()))
    return path


class TestMain:
    """Tests for the CLI."""

    def test_writes_layout(self, family_file, capsys):
        """The layout is written next to the input by default."""
        assert main([str(family_file)]) == 0
        output = family_file.with_suffix(".layout.json")
        data = json.loads(output.read_text())
        assert len(data["nodes"]) == 3
        assert data["fallback"] is None
        out = capsys.readouterr().out
        assert "No validation issues found" in out
        assert "Done!" in out

    def test_options(self, family_file, tmp_path):
        """Root, focus, placeholders and dot output are honoured."""
        output = tmp_path / "out.json"
        dot = tmp_path / "out.dot"
        code = main(
            [str(family_file), "--root", "C", "--focus", "C", "--placeholders", "-o", str(output), "--dot", str(dot)]
        )
        assert code == 0
        data = json.loads(output.read_text())
        assert any(n["is_placeholder"] for n in data["nodes"])
        assert dot.read_text().startswith("digraph")

    def test_fix_and_warnings(self, tmp_path, capsys):
        """--fix repairs one-sided references before validating."""
        path = tmp_path / "broken.json"
        path.write_text(
            json.dumps(
                {
                    "people": [
                        {"id": "a", "name": "A", "birth_year": 1950, "children": ["b"]},
                        {"id": "b", "name": "B", "birth_year": 1980},
                    ]
                }
            )
        )
        main([str(path)])
        assert "validation warnings" in capsys.readouterr().out
        main([str(path), "--fix"])
        out = capsys.readouterr().out
        assert "Made 1 repairs" in out
        assert "No validation issues found" in out

    def test_unknown_root(self, family_file, capsys):
        """An unknown root is an error."""
        assert main([str(family_file), "--root", "nobody"]) == 1
        assert "not found" in capsys.readouterr().out

    def test_empty_file(self, tmp_path):
        """An empty graph is an error."""
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"people": []}))
        assert main([str(path)]) == 1
