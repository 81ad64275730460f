"""
End-to-end tests for Channel scans.

These tests verify the complete flow from raw samples through the
two-phase scan to the corrected output:

1. Concrete damage scenarios (single spike, two spikes, short buffer)
2. Repair quality on tonal material with clicks
3. Lifecycle: async scan, progress reporting, re-scan rejection, close
4. Determinism and regeneration idempotence
5. Post-scan patch revision (length change, approval)
"""
from __future__ import annotations

import numpy as np
import pytest

from repair.channel import Channel
from shared.models import MINIMAL_PREDICTION_ERROR
from shared.settings import RepairSettings
from test.fixtures.signal_generators import add_clicks, add_noise, make_chord, make_silence, make_sine


class TestConcreteScenarios:
    @pytest.mark.slow
    def test_single_spike_in_silence(self):
        signal, _ = add_clicks(make_silence(10_000), [5000], 1.0)
        channel = Channel(signal, RepairSettings())

        channel.scan()
        patches = channel.get_all_patches()

        assert len(patches) == 1
        patch = patches[0]
        assert patch.covers(5000)
        assert patch.length <= 4
        assert channel.get_output_sample(5000) == pytest.approx(0.0, abs=1e-9)
        assert channel.get_prediction_err(5000) == MINIMAL_PREDICTION_ERROR
        assert channel.get_input_sample(5000) == 1.0

    def test_buffer_shorter_than_history(self):
        channel = Channel(np.ones(100), RepairSettings())

        channel.scan()

        assert channel.is_preprocessed
        assert channel.number_of_patches == 0
        assert channel.get_all_patches() == []
        np.testing.assert_array_equal(channel.get_prediction_err_range(0, 100), np.zeros(100))
        np.testing.assert_array_equal(channel.get_output_range(0, 100), np.ones(100))

    def test_two_distant_spikes_make_two_patches(self, small_settings):
        gap = small_settings.max_length_of_correction * 5
        signal, _ = add_clicks(make_silence(1000), [300, 300 + gap], [0.8, -0.5])
        channel = Channel(signal, small_settings)

        channel.scan()
        patches = channel.get_all_patches()

        assert [p.start_position for p in patches] == [300, 300 + gap]
        assert patches[0].end_position < patches[1].start_position

    def test_empty_buffer(self, small_settings):
        channel = Channel(np.array([]), small_settings)
        channel.scan()
        assert channel.length_samples == 0
        assert channel.number_of_patches == 0

    @pytest.mark.slow
    def test_clicks_inside_first_analyzer_window(self):
        settings = RepairSettings()
        first = settings.input_data_size
        assert first + settings.analyzer_window > 900
        signal, _ = add_clicks(make_silence(5000), [600, 700, 800, 900], 1.0)
        channel = Channel(signal, settings)

        channel.scan()

        assert [(p.start_position, p.length) for p in channel.get_all_patches()] == [
            (600, 1),
            (700, 1),
            (800, 1),
            (900, 1),
        ]
        for position in (600, 700, 800, 900):
            assert channel.get_output_sample(position) == pytest.approx(0.0, abs=1e-9)


class TestRepairQuality:
    def test_clicks_on_noisy_tone_are_repaired(self):
        settings = RepairSettings(
            history_length_samples=256,
            max_length_of_correction=60,
            analyzer_block_length=8,
            analyzer_blocks=16,
            max_workers=2,
        )
        clean = add_noise(make_sine(4000, cycles_per_sample=0.01), 0.001, seed=21)
        signal, _ = add_clicks(clean, [1500, 3000], [0.8, -0.6])
        channel = Channel(signal, settings)

        channel.scan()

        for position in (1500, 3000):
            assert channel.get_patch_at(position) is not None
            assert channel.get_output_sample(position) == pytest.approx(clean[position], abs=0.05)
        output = channel.get_output_range(0, 4000)
        assert np.max(np.abs(output - clean)) < 0.05

    def test_chord_with_burst_is_repaired(self):
        settings = RepairSettings(
            coefficients_number=8,
            history_length_samples=256,
            max_length_of_correction=60,
            max_workers=3,
        )
        clean = add_noise(make_chord(6000), 0.0005, seed=5)
        signal, _ = add_clicks(clean, [2500, 4100], [0.5, -0.7], width=4)
        channel = Channel(signal, settings)

        channel.scan()

        for start in (2500, 4100):
            for position in range(start, start + 4):
                assert channel.get_patch_at(position) is not None
        damaged_error = np.max(np.abs(signal - clean))
        repaired_error = np.max(np.abs(channel.get_output_range(0, 6000) - clean))
        assert repaired_error < damaged_error / 5

    def test_clean_tone_needs_no_patches(self, small_settings):
        channel = Channel(add_noise(make_sine(3000), 0.001, seed=8), small_settings)
        channel.scan()
        assert channel.number_of_patches == 0

    def test_single_sample_click_gets_tight_patch(self):
        settings = RepairSettings(
            history_length_samples=256,
            max_length_of_correction=60,
            analyzer_block_length=8,
            analyzer_blocks=16,
            max_workers=2,
        )
        clean = add_noise(make_sine(7000, cycles_per_sample=0.01), 0.001, seed=33)
        signal, _ = add_clicks(clean, [3000, 6000], [0.8, -0.8])
        channel = Channel(signal, settings)

        channel.scan()

        for position in (3000, 6000):
            patch = channel.get_patch_at(position)
            assert patch is not None
            assert patch.start_position == position
            assert patch.length <= 2


class TestLifecycle:
    def test_constructor_rejects_missing_samples(self):
        with pytest.raises(ValueError):
            Channel(None)
        with pytest.raises(ValueError):
            Channel(np.zeros((2, 10)))

    def test_reads_before_scan(self, small_settings):
        channel = Channel(np.arange(10.0), small_settings)

        assert not channel.is_preprocessed
        assert channel.get_output_sample(3) == 3.0
        with pytest.raises(RuntimeError):
            channel.get_prediction_err(3)

    def test_out_of_range_reads_raise(self, small_settings):
        channel = Channel(np.zeros(200), small_settings)
        channel.scan()
        for read in (channel.get_input_sample, channel.get_output_sample, channel.get_prediction_err):
            with pytest.raises(IndexError):
                read(200)
            with pytest.raises(IndexError):
                read(-1)
        with pytest.raises(IndexError):
            channel.get_input_range(190, 20)

    def test_input_is_copied(self, small_settings):
        samples = np.zeros(100)
        channel = Channel(samples, small_settings)
        samples[10] = 5.0
        assert channel.get_input_sample(10) == 0.0

    def test_rescan_is_rejected_and_keeps_patches(self, small_settings):
        signal, _ = add_clicks(make_silence(600), [400], 1.0)
        channel = Channel(signal, small_settings)
        channel.scan()
        patches = channel.get_all_patches()
        values = [p.values.copy() for p in patches]

        with pytest.raises(RuntimeError, match="already been scanned"):
            channel.scan()

        assert channel.get_all_patches() == patches
        for patch, before in zip(channel.get_all_patches(), values):
            np.testing.assert_array_equal(patch.values, before)

    def test_scan_async_reports_status_and_progress(self, small_settings, recorder):
        signal, _ = add_clicks(make_silence(3000), [2000], 1.0)
        channel = Channel(signal, small_settings)
        status, progress = recorder(), recorder()

        future = channel.scan_async(status, progress)
        future.result(timeout=30)

        assert channel.is_preprocessed
        assert channel.number_of_patches == 1
        assert status.values == ["Preparation", "Scanning", "Completed"]
        assert progress.values[-1] == 100.0
        assert all(0.0 <= p <= 100.0 for p in progress.values)

    def test_scan_async_surfaces_errors(self, small_settings):
        channel = Channel(np.zeros(500), small_settings)
        channel.scan()

        future = channel.scan_async()

        with pytest.raises(RuntimeError):
            future.result(timeout=10)

    def test_context_manager_closes_patch_collection(self, small_settings):
        with Channel(np.zeros(300), small_settings) as channel:
            channel.scan()
            assert not channel._patch_collection.is_closed
        assert channel._patch_collection.is_closed
        assert channel.get_output_sample(10) == 0.0


    def test_scan_after_close_is_rejected(self, small_settings):
        channel = Channel(np.zeros(300), small_settings)
        channel.close()

        with pytest.raises(RuntimeError, match="closed"):
            channel.scan()
        assert not channel.is_preprocessed


class TestDeterminism:
    def test_two_scans_agree(self, small_settings):
        signal, _ = add_clicks(add_noise(make_sine(3000), 0.002, seed=13), [700, 1900, 2600], [0.4, -0.9, 0.3])
        first, second = Channel(signal, small_settings), Channel(signal, small_settings)
        first.scan()
        second.scan()

        assert [(p.start_position, p.length) for p in first.get_all_patches()] == [
            (p.start_position, p.length) for p in second.get_all_patches()
        ]
        np.testing.assert_array_equal(first.get_output_range(0, 3000), second.get_output_range(0, 3000))

    def test_regeneration_is_idempotent(self, small_settings):
        signal, _ = add_clicks(add_noise(make_sine(3000), 0.002, seed=14), [800, 2200], [0.7, -0.7])
        channel = Channel(signal, small_settings)
        channel.scan()
        before = channel.get_output_range(0, 3000)

        for patch in channel.get_all_patches():
            patch.update()

        np.testing.assert_array_equal(channel.get_output_range(0, 3000), before)


class TestPatchRevision:
    def _scanned(self, settings, positions):
        # Isolated clicks in silence each become a single-sample patch.
        signal, _ = add_clicks(make_silence(2000), positions, 0.9)
        channel = Channel(signal, settings)
        channel.scan()
        return channel

    def test_change_length_regenerates_patch(self, small_settings):
        channel = self._scanned(small_settings, [1000])
        patch = channel.get_patch_at(1000)
        assert patch.length == 1

        channel.change_patch_length(patch, 6)

        assert patch.length == 6
        assert patch.values.shape == (6,)
        assert channel.get_output_sample(1005) == patch.values[-1]
        assert channel.get_prediction_err(1005) == MINIMAL_PREDICTION_ERROR

    def test_change_length_refreshes_dependent_patches(self, small_settings):
        channel = self._scanned(small_settings, [900, 940, 1500])
        first = channel.get_patch_at(900)
        near = channel.get_patch_at(940)
        far = channel.get_patch_at(1500)
        calls = []
        near.update = lambda: calls.append("near")
        far.update = lambda: calls.append("far")

        channel.change_patch_length(first, 4)

        assert calls == ["near"]

    def test_change_length_rejects_overlap_and_bounds(self, small_settings):
        channel = self._scanned(small_settings, [900, 920])
        first = channel.get_patch_at(900)

        with pytest.raises(ValueError):
            channel.change_patch_length(first, 21)
        with pytest.raises(ValueError):
            channel.change_patch_length(first, 0)
        with pytest.raises(ValueError):
            channel.change_patch_length(first, small_settings.max_length_of_correction + 1)
        assert first.length == 1

    def test_unapproved_patch_restores_input(self, small_settings):
        channel = self._scanned(small_settings, [1000])
        patch = channel.get_patch_at(1000)

        patch.approved = False

        assert channel.get_output_sample(1000) == channel.get_input_sample(1000)
        assert channel.get_prediction_err(1000) != MINIMAL_PREDICTION_ERROR
