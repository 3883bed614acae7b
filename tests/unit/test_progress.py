from __future__ import annotations

from unittest.mock import Mock, patch

from tabular_import.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    """Test that is_tty_enabled returns sys.stdout.isatty()."""
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True

    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:
    """Test cases for ProgressTracker class."""

    def test_init_with_tty_enabled(self):
        with patch('tabular_import.services.progress.is_tty_enabled', return_value=True), \
             patch('tabular_import.services.progress.tqdm') as mock_tqdm:

            tracker = ProgressTracker(120, description="Importing vendors")

            assert tracker.total_rows == 120
            assert tracker.current == 0
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=120,
                desc="Importing vendors",
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch('tabular_import.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(5)

            assert tracker.enabled is False
            assert tracker.pbar is None

    def test_advance_updates_bar_by_batch(self):
        mock_pbar = Mock()
        with patch('tabular_import.services.progress.is_tty_enabled', return_value=True), \
             patch('tabular_import.services.progress.tqdm', return_value=mock_pbar):

            tracker = ProgressTracker(100)
            tracker.advance(50)
            tracker.advance(25)

            assert tracker.current == 75
            assert mock_pbar.update.call_count == 2
            mock_pbar.update.assert_called_with(25)

    def test_advance_without_tty_only_counts(self):
        with patch('tabular_import.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(10)
            tracker.advance(10)
            assert tracker.current == 10

    def test_set_postfix_with_tty_enabled(self):
        mock_pbar = Mock()
        with patch('tabular_import.services.progress.is_tty_enabled', return_value=True), \
             patch('tabular_import.services.progress.tqdm', return_value=mock_pbar):

            tracker = ProgressTracker(3)
            tracker.set_postfix(imported=2, skipped=0, failed=1)

            mock_pbar.set_postfix.assert_called_once_with(imported=2, skipped=0, failed=1)

    def test_context_manager_closes_bar(self):
        mock_pbar = Mock()
        with patch('tabular_import.services.progress.is_tty_enabled', return_value=True), \
             patch('tabular_import.services.progress.tqdm', return_value=mock_pbar):

            with ProgressTracker(3) as tracker:
                tracker.advance(3)

            mock_pbar.close.assert_called_once()
            assert tracker.pbar is None
