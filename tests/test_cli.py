import tempfile
import unittest
from pathlib import Path

from typer.testing import CliRunner

from fourinrow.cli import _parse_column, app, render_board, replay
from fourinrow.engine import Board, Difficulty, Player
from fourinrow.search import SearchEngine
from fourinrow.storage import Settings, SettingsStore


class TestRendering(unittest.TestCase):
    def test_render_board_top_row_first(self):
        board = Board.from_columns([[Player.HUMAN, Player.AI]])
        lines = render_board(board).splitlines()
        self.assertEqual(len(lines), 8)
        self.assertTrue(lines[5].startswith("[bold red]X[/]"))
        self.assertTrue(lines[4].startswith("[bold yellow]O[/]"))
        self.assertEqual(lines[-1], "0 1 2 3 4 5 6")

    def test_parse_column(self):
        self.assertEqual(_parse_column(" 3 "), 3)
        self.assertEqual(_parse_column("0"), 0)
        self.assertEqual(_parse_column("6"), 6)
        self.assertIsNone(_parse_column("7"))
        self.assertIsNone(_parse_column("-1"))
        self.assertIsNone(_parse_column("x"))
        self.assertIsNone(_parse_column(""))


class TestCommands(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.data_dir = Path(self._tmp.name)
        self.store = SettingsStore.in_dir(self.data_dir)
        self.runner = CliRunner()

    def play(self, *args, input="q\n"):
        return self.runner.invoke(
            app,
            ["play", "--data-dir", str(self.data_dir), "--pacing", "0", "--sound", "off", *args],
            input=input,
        )

    def test_play_saves_chosen_options(self):
        result = self.play("--difficulty", "Easy", "--first", "human")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Your turn", result.output)

        settings = self.store.load()
        self.assertIs(settings.difficulty, Difficulty.EASY)
        self.assertIs(settings.first_player, Player.HUMAN)
        self.assertFalse(settings.sound_enabled)

    def test_play_a_move_then_quit(self):
        result = self.play("--difficulty", "Easy", "--seed", "1", input="3\nq\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output.count("Your turn"), 2)

    def test_play_reports_bad_input(self):
        result = self.play("--difficulty", "Easy", input="x\n9\nq\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output.count("Enter a column index"), 2)

    def test_play_rejects_unknown_first_player(self):
        result = self.play("--first", "cat")
        self.assertNotEqual(result.exit_code, 0)

    def test_stats_table(self):
        settings = Settings()
        settings.stats.record_win(Difficulty.NORMAL)
        self.store.save(settings)

        result = self.runner.invoke(app, ["stats", "--data-dir", str(self.data_dir)])
        self.assertEqual(result.exit_code, 0, result.output)
        for d in Difficulty:
            self.assertIn(d.value, result.output)

    def test_stats_reset(self):
        settings = Settings()
        settings.stats.record_win(Difficulty.NORMAL)
        self.store.save(settings)

        result = self.runner.invoke(app, ["stats", "--reset", "--data-dir", str(self.data_dir)])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.store.load().stats.wins_for(Difficulty.NORMAL), 0)

    def test_suggest_finds_the_block(self):
        # Human stacks three in column 0; the AI must answer in column 0.
        result = self.runner.invoke(app, ["suggest", "0,6,0,6,0", "--depth", "2"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("best: 0", result.output)

    def test_suggest_scores_are_exact(self):
        result = self.runner.invoke(app, ["suggest", "3,2,3", "--depth", "4"])
        self.assertEqual(result.exit_code, 0, result.output)
        # column 4 loses more than column 1; a bound would show both as -47
        self.assertIn("-90", result.output)
        self.assertIn("-80", result.output)

    def test_suggest_best_is_the_engine_choice(self):
        # At depth 1 the scores are plain heuristics, but the engine still blocks column 0.
        board = replay("0,6,0,6,0")
        self.assertEqual(SearchEngine().search_move(board, 1), 0)
        result = self.runner.invoke(app, ["suggest", "0,6,0,6,0", "--depth", "1"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("best: 0", result.output)

    def test_suggest_rejects_illegal_sequence(self):
        result = self.runner.invoke(app, ["suggest", "0,0,0,0,0,0,0"])
        self.assertEqual(result.exit_code, 2)


if __name__ == "__main__":
    unittest.main()
