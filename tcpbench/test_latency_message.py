import threading
import unittest

from tcpbench.config import BenchConfig
from tcpbench.latency import LatencyClient, LatencyServer
from tcpbench.message import MessageClient, MessageServer, decode_text

HOST = "127.0.0.1"


class LatencyTest(unittest.TestCase):
    def test_ping_pong_keeps_second_half(self):
        server = LatencyServer(BenchConfig(host=HOST, port=0, n_bytes=4, n_rounds=5))
        server.setup()
        self.addCleanup(server.close)

        served = []
        server_thread = threading.Thread(target=lambda: served.append(server.serve_once()))
        server_thread.daemon = True
        server_thread.start()

        stats = LatencyClient(BenchConfig(host=HOST, port=server.port, n_bytes=4, n_rounds=5)).run()
        server_thread.join(timeout=10)

        self.assertEqual(served, [10])
        self.assertEqual(len(stats.durations_us), 5)
        self.assertTrue(all(d > 0 for d in stats.durations_us))


class MessageTest(unittest.TestCase):
    def start_server(self, max_data_size):
        server = MessageServer(BenchConfig(host=HOST, port=0, max_data_size=max_data_size))
        server.setup()
        self.addCleanup(server.close)

        received = []
        server_thread = threading.Thread(target=lambda: received.append(server.handle_one()))
        server_thread.daemon = True
        server_thread.start()
        return server, server_thread, received

    def test_message_longer_than_buffer_is_truncated(self):
        server, server_thread, received = self.start_server(15)

        sent = MessageClient(BenchConfig(host=HOST, port=server.port)).run()
        server_thread.join(timeout=10)

        self.assertEqual(sent, 18)
        self.assertEqual(received, [b"Hello, Shyper OS"])
        self.assertEqual(decode_text(received[0]), "Hello, Shyper OS")

    def test_message_fits_buffer(self):
        server, server_thread, received = self.start_server(64)

        MessageClient(BenchConfig(host=HOST, port=server.port, message="hi")).run()
        server_thread.join(timeout=10)

        self.assertEqual(received, [b"hi\0"])
        self.assertEqual(decode_text(received[0]), "hi")


if __name__ == "__main__":
    unittest.main()
