"""
Mode controller tests: the per-mode state machines that turn the rolling
average into playback commands.
"""

import unittest

from focus_engine.config import EngineConfig
from focus_engine.models import Command, CommandType, SessionMode
from focus_engine.modes import (
    FocusSignal,
    IntrusiveController,
    IntrusiveState,
    NonIntrusiveController,
    ObserverController,
    StrictController,
    create_mode_controller,
)

UNFOCUSED = FocusSignal(average_score=50.0, face_detected=True)
FOCUSED = FocusSignal(average_score=90.0, face_detected=True)
NO_FACE = FocusSignal(average_score=90.0, face_detected=False)


def types(commands):
    return [c.type for c in commands]


class TestModeFactory(unittest.TestCase):

    def test_mode_names(self):
        self.assertIs(SessionMode.parse("NonIntrusive"), SessionMode.NON_INTRUSIVE)
        self.assertIs(SessionMode.parse("no-control"), SessionMode.NO_CONTROL)
        self.assertIs(SessionMode.parse("score_only"), SessionMode.SCORE_ONLY)
        with self.assertRaises(ValueError):
            SessionMode.parse("aggressive")

    def test_controller_per_mode(self):
        self.assertIsInstance(create_mode_controller("normal"), ObserverController)
        self.assertIsInstance(create_mode_controller("score_only"), ObserverController)
        self.assertIsInstance(create_mode_controller("nonintrusive"), NonIntrusiveController)
        self.assertIsInstance(create_mode_controller("intrusive"), IntrusiveController)
        strict = create_mode_controller("strict")
        no_control = create_mode_controller("nocontrol")
        self.assertIsInstance(strict, StrictController)
        self.assertFalse(strict.lock_controls)
        self.assertTrue(no_control.lock_controls)


class TestObserverController(unittest.TestCase):

    def test_never_issues_commands(self):
        controller = create_mode_controller("normal")
        for t in range(100):
            self.assertEqual(controller.update(UNFOCUSED if t % 2 else NO_FACE, float(t)), [])

    def test_session_start(self):
        commands = create_mode_controller("normal").on_session_start()
        self.assertEqual(commands, [Command(CommandType.SET_VOLUME, 1.0), Command(CommandType.ENABLE_CONTROLS)])


class TestNonIntrusiveController(unittest.TestCase):

    def setUp(self):
        self.controller = NonIntrusiveController(SessionMode.NON_INTRUSIVE, EngineConfig(COOLDOWN=30.0))

    def test_popup_on_unfocus(self):
        self.assertEqual(self.controller.update(FOCUSED, 0.0), [])
        self.assertEqual(types(self.controller.update(UNFOCUSED, 1.0)), [CommandType.SHOW_POPUP])
        self.assertTrue(self.controller.holds_playback)

    def test_face_absence_triggers_popup(self):
        self.assertEqual(types(self.controller.update(NO_FACE, 0.0)), [CommandType.SHOW_POPUP])

    def test_open_popup_suspends_evaluation(self):
        self.controller.update(UNFOCUSED, 0.0)
        for t in range(1, 60):
            self.assertEqual(self.controller.update(UNFOCUSED, float(t)), [])

    def test_cooldown_runs_from_dismissal(self):
        self.controller.update(UNFOCUSED, 0.0)
        self.assertEqual(types(self.controller.resolve_popup("continue", 10.0)), [CommandType.HIDE_POPUP])
        self.assertFalse(self.controller.holds_playback)
        self.assertEqual(self.controller.update(UNFOCUSED, 39.9), [])
        self.assertEqual(types(self.controller.update(UNFOCUSED, 40.0)), [CommandType.SHOW_POPUP])

    def test_pause_choice(self):
        self.controller.update(UNFOCUSED, 0.0)
        commands = self.controller.resolve_popup("pause", 1.0)
        self.assertEqual(types(commands), [CommandType.HIDE_POPUP, CommandType.PAUSE])

    def test_resolve_without_popup_is_noop(self):
        self.assertEqual(self.controller.resolve_popup("continue", 0.0), [])

    def test_unknown_choice(self):
        with self.assertRaises(ValueError):
            self.controller.resolve_popup("skip", 0.0)


class TestIntrusiveController(unittest.TestCase):

    def setUp(self):
        self.controller = IntrusiveController(
            SessionMode.INTRUSIVE, EngineConfig(COOLDOWN=30.0, RECOVERY_DURATION=2.0))

    def test_pause_happens_once(self):
        commands = self.controller.update(UNFOCUSED, 0.0)
        self.assertEqual(types(commands), [
            CommandType.PLAY_WARNING_SOUND,
            CommandType.SHOW_OVERLAY,
            CommandType.DISABLE_CONTROLS,
            CommandType.PAUSE,
        ])
        self.assertIs(self.controller.current_state, IntrusiveState.PAUSED)
        for t in (0.5, 1.0, 40.0):
            self.assertEqual(self.controller.update(UNFOCUSED, t), [])

    def test_recovery_needs_full_duration(self):
        self.controller.update(UNFOCUSED, 0.0)
        self.assertEqual(self.controller.update(FOCUSED, 2.0), [])
        self.assertIs(self.controller.current_state, IntrusiveState.RECOVERING)
        self.assertEqual(self.controller.update(FOCUSED, 3.999), [])
        commands = self.controller.update(FOCUSED, 4.0)
        self.assertEqual(types(commands), [
            CommandType.HIDE_OVERLAY,
            CommandType.ENABLE_CONTROLS,
            CommandType.RESUME,
        ])
        self.assertIs(self.controller.current_state, IntrusiveState.PLAYING)

    def test_unfocus_during_recovery_resets_timer(self):
        self.controller.update(UNFOCUSED, 0.0)
        self.controller.update(FOCUSED, 1.0)
        self.assertEqual(self.controller.update(UNFOCUSED, 2.0), [])
        self.assertIs(self.controller.current_state, IntrusiveState.PAUSED)
        self.controller.update(FOCUSED, 3.0)
        self.assertEqual(self.controller.update(FOCUSED, 4.5), [])
        self.assertEqual(types(self.controller.update(FOCUSED, 5.0))[-1], CommandType.RESUME)

    def test_cooldown_between_pauses(self):
        self.controller.update(UNFOCUSED, 0.0)
        self.controller.update(FOCUSED, 1.0)
        self.controller.update(FOCUSED, 3.0)
        self.assertEqual(self.controller.update(UNFOCUSED, 10.0), [])
        self.assertIs(self.controller.current_state, IntrusiveState.PLAYING)
        self.assertIn(CommandType.PAUSE, types(self.controller.update(UNFOCUSED, 30.0)))

    def test_face_absence_pauses(self):
        self.assertIn(CommandType.PAUSE, types(self.controller.update(NO_FACE, 0.0)))

    def test_state_snapshot(self):
        self.controller.update(UNFOCUSED, 0.0)
        self.controller.update(FOCUSED, 1.0)
        state = self.controller.state()
        self.assertEqual(state["mode"], "intrusive")
        self.assertEqual(state["state"], "recovering")
        self.assertEqual(state["recovery_started_at"], 1.0)


class TestStrictController(unittest.TestCase):

    def setUp(self):
        self.controller = StrictController(SessionMode.STRICT, EngineConfig())

    def test_session_start_lowers_volume(self):
        self.assertEqual(self.controller.on_session_start(),
                         [Command(CommandType.SET_VOLUME, 0.6), Command(CommandType.ENABLE_CONTROLS)])

    def test_no_control_locks_controls(self):
        controller = create_mode_controller("nocontrol")
        self.assertIn(Command(CommandType.DISABLE_CONTROLS), controller.on_session_start())

    def test_pause_and_resume_follow_face(self):
        self.assertEqual(types(self.controller.update(NO_FACE, 0.0)),
                         [CommandType.SHOW_OVERLAY, CommandType.PAUSE])
        self.assertEqual(self.controller.update(NO_FACE, 0.1), [])
        self.assertEqual(types(self.controller.update(FOCUSED, 0.2)),
                         [CommandType.HIDE_OVERLAY, CommandType.RESUME])

    def test_low_score_alone_does_not_pause(self):
        self.assertEqual(self.controller.update(UNFOCUSED, 0.0), [])

    def test_volume_boost_while_drifting(self):
        drifting = FocusSignal(average_score=80.0, face_detected=True, gaze_away=True)
        commands = self.controller.update(drifting, 0.0)
        self.assertEqual(len(commands), 1)
        self.assertEqual(commands[0].type, CommandType.SET_VOLUME)
        self.assertAlmostEqual(commands[0].value, 1.0)
        self.assertEqual(self.controller.update(drifting, 0.1), [])
        self.assertEqual(self.controller.update(FOCUSED, 0.2), [Command(CommandType.SET_VOLUME, 0.6)])


if __name__ == "__main__":
    unittest.main()
