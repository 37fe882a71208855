"""
Tests for session naming and the remote command strings built from it.
"""
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from fakes import reset_config  # noqa: E402

from relocal.core import remote_cmds  # noqa: E402
from relocal.errors import InvalidSessionNameError  # noqa: E402
from relocal.session import Session, default_session_name, validate_session_name  # noqa: E402


class TestSessionNames(unittest.TestCase):

    def test_valid_names(self):
        for name in ("demo", "my-project", "my_project", "Proj42", "projét"):
            validate_session_name(name)

    def test_invalid_names(self):
        for name in ("", "a b", "a/b", "a;rm -rf", "a.b", "$(x)", "it's"):
            with self.assertRaises(InvalidSessionNameError, msg=name):
                validate_session_name(name)

    def test_default_name_from_directory(self):
        self.assertEqual(default_session_name(Path("/home/u/my-proj")), "my-proj")

    def test_default_name_rejects_unusable_directory(self):
        with self.assertRaises(InvalidSessionNameError):
            default_session_name(Path("/home/u/my proj"))

    def test_session_validates_on_construction(self):
        with self.assertRaises(InvalidSessionNameError):
            Session(name="bad name", remote="user@host", local_root=Path("/tmp"))

    def test_resolve_uses_directory_name_and_config_target(self):
        import relocal.config as cfg
        reset_config()
        cfg.SSH_HOST, cfg.SSH_USER = "box", "dev"
        try:
            session = Session.resolve(None, Path("/work/alpha"))
        finally:
            reset_config()
        self.assertEqual(session.name, "alpha")
        self.assertEqual(session.remote, "dev@box")
        self.assertEqual(session.remote_root, "~/relocal/alpha")


class TestRemoteCommands(unittest.TestCase):

    def test_fifo_paths(self):
        self.assertEqual(remote_cmds.fifo_request_path("demo"), "~/relocal/.fifos/demo-request")
        self.assertEqual(remote_cmds.fifo_ack_path("demo"), "~/relocal/.fifos/demo-ack")

    def test_create_and_remove_fifos(self):
        self.assertEqual(remote_cmds.create_fifos("demo"),
                         "mkfifo ~/relocal/.fifos/demo-request ~/relocal/.fifos/demo-ack")
        self.assertEqual(remote_cmds.remove_fifos("demo"),
                         "rm -f ~/relocal/.fifos/demo-request ~/relocal/.fifos/demo-ack")

    def test_request_stream_loops_while_fifo_exists(self):
        cmd = remote_cmds.read_request_fifo("demo")
        self.assertTrue(cmd.startswith("while [ -p ~/relocal/.fifos/demo-request ]"))
        self.assertIn("cat ~/relocal/.fifos/demo-request", cmd)

    def test_ack_is_single_quoted(self):
        self.assertEqual(remote_cmds.write_ack("demo", "ok"), "printf '%s\\n' 'ok' > ~/relocal/.fifos/demo-ack")
        self.assertEqual(remote_cmds.write_ack("demo", "error:it's $HOME"),
                         "printf '%s\\n' 'error:it'\\''s $HOME' > ~/relocal/.fifos/demo-ack")

    def test_ack_backslashes_reach_printf_untouched(self):
        cmd = remote_cmds.write_ack("demo", "error:C:\\\\tmp\\\\new")
        self.assertFalse(cmd.startswith("echo"))
        self.assertIn("'error:C:\\\\tmp\\\\new'", cmd)

    def test_settings_write_uses_quoted_heredoc(self):
        cmd = remote_cmds.write_settings_json("demo", '{"a": "$HOME"}')
        self.assertIn("mkdir -p ~/relocal/demo/.claude", cmd)
        self.assertIn("cat > ~/relocal/demo/.claude/settings.json << 'RELOCAL_EOF'\n", cmd)
        self.assertTrue(cmd.endswith('{"a": "$HOME"}\nRELOCAL_EOF'))

    def test_hook_script_install(self):
        cmd = remote_cmds.write_hook_script("#!/bin/bash\necho hi")
        self.assertIn("cat > ~/relocal/.bin/relocal-hook.sh << 'RELOCAL_HOOK_EOF'", cmd)
        self.assertTrue(cmd.endswith("chmod +x ~/relocal/.bin/relocal-hook.sh"))

    def test_claude_launch_quotes_extra_args(self):
        cmd = remote_cmds.start_claude_session("demo", ("--model", "opus 4"))
        self.assertEqual(cmd, "cd ~/relocal/demo && claude --dangerously-skip-permissions '--model' 'opus 4'")

    def test_claude_launch_without_args(self):
        self.assertEqual(remote_cmds.start_claude_session("demo"),
                         "cd ~/relocal/demo && claude --dangerously-skip-permissions")

    def test_list_sessions_skips_internal_dirs(self):
        cmd = remote_cmds.list_sessions()
        for name in (".bin", ".fifos", ".logs"):
            self.assertIn(f"'^\\{name}$'", cmd)


if __name__ == "__main__":
    unittest.main()
