import json

import pytest
from grocery_planner.cli import build_parser, cmd_parse, get_note_path
from grocery_planner.grocery_note import save_grocery_list
from grocery_planner.models import NormalizedItem


class TestBuildParser:
    def test_grocery_list_options(self):
        args = build_parser().parse_args(
            ["grocery-list", "--plan-file", "w.yaml", "--model", "sonnet", "--timeout", "30"]
        )
        assert args.plan_file == "w.yaml"
        assert args.model == "sonnet"
        assert args.timeout == 30
        assert args.format == "markdown"

    def test_scale_repeatable_quantity(self):
        args = build_parser().parse_args(
            ["scale", "--servings", "6", "--quantity", "200 g", "--quantity", "2", "--base", "4"]
        )
        assert args.recipe is None
        assert args.servings == 6.0
        assert args.quantity == ["200 g", "2"]

    def test_check_uncheck(self):
        args = build_parser().parse_args(["check", "3", "--uncheck"])
        assert args.item_id == 3
        assert args.uncheck is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:
    def test_parse_json(self, capsys):
        args = build_parser().parse_args(["parse", "200 g di pasta", "Sale q.b.", "--format", "json"])
        cmd_parse(args)
        data = json.loads(capsys.readouterr().out)
        assert [(d["quantity"], d["name"]) for d in data] == [("200 g", "pasta"), ("q.b.", "Sale")]

    def test_show_reads_saved_note(self, tmp_path, capsys):
        args = build_parser().parse_args(
            ["--vault-path", str(tmp_path), "show", "--format", "text"]
        )
        save_grocery_list(get_note_path(args), [NormalizedItem(name="Pasta", total_quantity="300 g")])

        args.func(args)
        assert capsys.readouterr().out.strip() == "Pasta - 300 g"

    def test_check_unknown_id_exits(self, tmp_path):
        args = build_parser().parse_args(["--vault-path", str(tmp_path), "check", "9"])
        save_grocery_list(get_note_path(args), [])
        with pytest.raises(SystemExit):
            args.func(args)
