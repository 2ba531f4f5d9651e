import json
from unittest.mock import patch

from .test_base import BaseChatCLITest, make_completion


class TestCommands(BaseChatCLITest):
    def test_clear_command(self):
        """/clear leaves only the system prompt"""
        self.test_session.add_user_message("Hello")
        self.test_session.add_reply({"role": "assistant", "content": "Hi there!"})
        self.test_session.pending_image = "https://example.com/a.png"

        self.assertTrue(self.chat_cli.handle_command("/clear"))

        self.assertEqual(
            self.test_session.messages,
            [{"role": "system", "content": "You are a helpful assistant."}],
        )
        self.assertIsNone(self.test_session.pending_image)

    def test_clear_keeps_changed_system_prompt(self):
        self.chat_cli.handle_command("/system Talk like a pirate")
        self.test_session.add_user_message("Hello")

        self.chat_cli.handle_command("/clear")

        self.assertEqual(
            self.test_session.messages, [{"role": "system", "content": "Talk like a pirate"}]
        )

    def test_system_without_argument_does_not_mutate(self):
        before = [dict(m) for m in self.test_session.messages]

        self.chat_cli.handle_command("/system")

        self.assertEqual(self.test_session.messages, before)
        self.assertIn("You are a helpful assistant.", self.printed())

    def test_system_sets_prompt_exactly(self):
        self.chat_cli.handle_command("/system foo")
        self.assertEqual(self.test_session.messages[0]["content"], "foo")

        self.chat_cli.handle_command("/system   several words here  ")
        self.assertEqual(self.test_session.messages[0]["content"], "several words here")

    def test_model_show(self):
        self.chat_cli.handle_command("/model")
        self.assertEqual(self.test_session.model, "openai/gpt-4o-mini")
        self.assertIn("openai/gpt-4o-mini", self.printed())

    def test_model_switch_is_persisted(self):
        self.chat_cli.handle_command("/model anthropic/claude-3.5-sonnet")

        self.assertEqual(self.test_session.model, "anthropic/claude-3.5-sonnet")
        self.assertEqual(self.settings.model, "anthropic/claude-3.5-sonnet")
        data = json.loads(self.config_path.read_text())
        self.assertEqual(data["api"]["model"], "anthropic/claude-3.5-sonnet")

    def test_image_sets_pending(self):
        self.chat_cli.handle_command("/image https://example.com/cat.png")
        self.assertEqual(self.test_session.pending_image, "https://example.com/cat.png")

    def test_image_without_url(self):
        self.chat_cli.handle_command("/image")
        self.assertIsNone(self.test_session.pending_image)
        self.assertIn("Usage: /image <url>", self.printed())

    def test_save_to_path(self):
        target = self.tmp_dir / "mine.json"

        self.chat_cli.handle_command(f"/save {target}")

        self.assertEqual(json.loads(target.read_text())["messages"], self.test_session.messages)

    def test_save_default_path(self):
        self.chat_cli.handle_command("/save")
        saved = list(self.settings.save_directory.glob("chat_session_*.json"))
        self.assertEqual(len(saved), 1)

    def test_unknown_command(self):
        self.assertTrue(self.chat_cli.handle_command("/bogus"))
        self.assertIn("Unknown command: /bogus", self.printed())

    def test_unknown_command_with_markup(self):
        self.assertTrue(self.chat_cli.handle_command("/x[/]"))
        self.assertIn("Unknown command: /x[/]", self.rendered())

    def test_history_with_bracketed_role(self):
        self.test_session.messages.append({"role": "[/]", "content": "odd"})
        self.chat_cli.handle_command("/history")
        self.assertIn("[/]", self.rendered())

    def test_help(self):
        self.chat_cli.handle_command("/help")
        self.assertIn("/image URL", self.printed())

    def test_history(self):
        self.test_session.add_user_message("Hello there")
        self.chat_cli.handle_command("/history")
        self.assertIn("Hello there", self.printed())

    def test_exit_without_save(self):
        self.assertFalse(self.chat_cli.handle_command("/exit"))
        self.assertFalse(self.settings.save_directory.exists())

    def test_exit_with_save(self):
        self.chat_cli.save_on_exit = True
        self.assertFalse(self.chat_cli.handle_command("/exit"))
        self.assertEqual(len(list(self.settings.save_directory.glob("*.json"))), 1)

    def test_key_show_is_masked(self):
        self.chat_cli.handle_command("/key")
        output = self.printed()
        self.assertNotIn("sk-or-test-key", output)
        self.assertIn("sk-o", output)

    def test_key_change_accepted(self):
        self.mock_client.with_options.return_value = self.mock_client
        self.mock_client.chat.completions.create.return_value = make_completion("p")

        self.chat_cli.handle_command("/key sk-or-new")

        self.assertEqual(self.settings.api_key, "sk-or-new")
        data = json.loads(self.config_path.read_text())
        self.assertEqual(data["api"]["apiKey"], "sk-or-new")

    def test_key_change_rejected(self):
        self.mock_client.with_options.return_value = self.mock_client
        with patch.object(self.mock_wrapper, "validate_key", return_value=False):
            self.chat_cli.handle_command("/key sk-or-bad")

        self.assertEqual(self.settings.api_key, "sk-or-test-key")
        self.assertEqual(
            self.mock_client.with_options.call_args.kwargs, {"api_key": "sk-or-test-key"}
        )


class TestAutoPersist(BaseChatCLITest):
    def setUp(self):
        super().setUp()
        self.store.auto_persist = True

    def current(self):
        return json.loads(self.store.current_path.read_text())

    def test_system_change_written(self):
        self.chat_cli.handle_command("/system new prompt")
        self.assertEqual(self.current()["messages"][0]["content"], "new prompt")

    def test_model_change_written(self):
        self.chat_cli.handle_command("/model meta/llama-3")
        self.assertEqual(self.current()["model"], "meta/llama-3")

    def test_turn_written(self):
        self.mock_client.chat.completions.create.return_value = make_completion("Hi!")
        self.chat_cli.send("Hello")
        self.assertEqual(len(self.current()["messages"]), 3)
