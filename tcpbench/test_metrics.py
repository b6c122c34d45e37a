import unittest

from tcpbench.metrics import LatencyStats, TransferStats, bandwidth_mbps


class BandwidthTest(unittest.TestCase):
    def test_one_mebibyte_per_second_is_eight_mbit(self):
        self.assertAlmostEqual(bandwidth_mbps(1048576, 1.0), 8.0)

    def test_doubling_elapsed_halves_bandwidth(self):
        total = 1048576 * 1000
        fast = bandwidth_mbps(total, 2.5)
        slow = bandwidth_mbps(total, 5.0)
        self.assertAlmostEqual(fast / 2, slow)

    def test_zero_elapsed(self):
        self.assertEqual(bandwidth_mbps(100, 0), 0.0)


class TransferStatsTest(unittest.TestCase):
    def run_rounds(self, n_bytes, n_rounds, step=0.5):
        stats = TransferStats(n_bytes, n_rounds, peer="127.0.0.1:5000")
        stats.begin(now=10.0)
        for i in range(1, n_rounds + 1):
            stats.record_round(n_bytes, now=10.0 + i * step)
        stats.finish(now=10.0 + n_rounds * step)
        return stats

    def test_total_bytes_is_rounds_times_size(self):
        for n_bytes, n_rounds in [(1, 1), (7, 3), (1048576, 10)]:
            stats = self.run_rounds(n_bytes, n_rounds)
            self.assertEqual(stats.total_bytes, n_bytes * n_rounds)
            self.assertEqual(len(stats.round_durations), n_rounds)

    def test_elapsed_and_bandwidth(self):
        stats = self.run_rounds(1048576, 4, step=0.5)
        self.assertAlmostEqual(stats.elapsed, 2.0)
        self.assertAlmostEqual(stats.bandwidth_mbps, 16.0)
        self.assertEqual(stats.total_kbytes, 4096)

    def test_stable_window_is_middle_third(self):
        # Totals 10..60, only 30 lies strictly inside (20, 40)
        stats = self.run_rounds(10, 6, step=1.0)
        self.assertEqual(stats.stable_bytes, 10)
        self.assertAlmostEqual(stats.stable_time, 1.0)
        self.assertAlmostEqual(stats.stable_bandwidth_mbps, 80 / 1048576)

    def test_to_dict(self):
        data = self.run_rounds(8, 2).to_dict()
        self.assertEqual(data["peer"], "127.0.0.1:5000")
        self.assertEqual(data["total_bytes"], 16)
        self.assertEqual(data["round_durations"], [0.5, 0.5])


class LatencyStatsTest(unittest.TestCase):
    def test_summary(self):
        stats = LatencyStats(1)
        for seconds in (0.001, 0.002, 0.003):
            stats.record(seconds)
        summary = stats.summary()
        self.assertEqual(summary["count"], 3)
        self.assertAlmostEqual(summary["min_us"], 1000)
        self.assertAlmostEqual(summary["max_us"], 3000)
        self.assertAlmostEqual(summary["median_us"], 2000)

    def test_empty_summary(self):
        self.assertEqual(LatencyStats(1).summary(), {"count": 0})


if __name__ == "__main__":
    unittest.main()
