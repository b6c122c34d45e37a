import unittest
from unittest.mock import MagicMock

from tcpbench.connection import receive_message, send_message
from tcpbench.errors import PeerClosedError, TransferError


class FragmentingSocket:
    """Socket double that moves at most `limit` bytes per call."""

    def __init__(self, incoming=b"", limit=4):
        self.incoming = bytearray(incoming)
        self.limit = limit
        self.sent = bytearray()
        self.send_calls = []
        self.recv_calls = 0

    def send(self, data):
        chunk = bytes(data[:self.limit])
        self.sent += chunk
        self.send_calls.append(len(chunk))
        return len(chunk)

    def recv_into(self, view, nbytes=0):
        self.recv_calls += 1
        n = min(self.limit, nbytes or len(view), len(self.incoming))
        view[:n] = self.incoming[:n]
        del self.incoming[:n]
        return n


class SendMessageTest(unittest.TestCase):
    def test_short_writes_are_continued(self):
        sock = FragmentingSocket(limit=4)
        buf = bytes(range(10))

        last = send_message(sock, buf, 10)

        self.assertEqual(bytes(sock.sent), buf)
        self.assertEqual(sock.send_calls, [4, 4, 2])
        self.assertEqual(last, 2)

    def test_only_first_n_bytes_are_sent(self):
        sock = FragmentingSocket(limit=100)
        send_message(sock, b"abcdef", 3)
        self.assertEqual(bytes(sock.sent), b"abc")

    def test_os_error_becomes_transfer_error(self):
        sock = MagicMock()
        sock.send.side_effect = BrokenPipeError(32, "Broken pipe")

        with self.assertRaises(TransferError) as ctx:
            send_message(sock, bytes(8), 8)
        self.assertEqual(ctx.exception.stage, "send")
        self.assertIn("Broken pipe", str(ctx.exception))

    def test_rejects_size_larger_than_buffer(self):
        with self.assertRaises(ValueError):
            send_message(FragmentingSocket(), bytes(4), 5)
        with self.assertRaises(ValueError):
            send_message(FragmentingSocket(), bytes(4), 0)


class ReceiveMessageTest(unittest.TestCase):
    def test_round_completes_only_when_full(self):
        payload = bytes(range(1, 11))
        sock = FragmentingSocket(incoming=payload + b"next", limit=3)
        buf = bytearray(10)

        received = receive_message(sock, buf, 10)

        self.assertEqual(received, 10)
        self.assertEqual(bytes(buf), payload)
        self.assertEqual(sock.recv_calls, 4)
        # Bytes of the following round stay in the stream
        self.assertEqual(bytes(sock.incoming), b"next")

    def test_peer_close_mid_round(self):
        sock = FragmentingSocket(incoming=b"abcde", limit=100)

        with self.assertRaises(PeerClosedError) as ctx:
            receive_message(sock, bytearray(8), 8)
        self.assertEqual(ctx.exception.received, 5)
        self.assertEqual(ctx.exception.expected, 8)
        self.assertEqual(ctx.exception.stage, "recv")

    def test_peer_close_before_any_bytes(self):
        with self.assertRaises(PeerClosedError) as ctx:
            receive_message(FragmentingSocket(), bytearray(8), 8)
        self.assertEqual(ctx.exception.received, 0)

    def test_os_error_becomes_transfer_error(self):
        sock = MagicMock()
        sock.recv_into.side_effect = ConnectionResetError(104, "Connection reset by peer")

        with self.assertRaises(TransferError) as ctx:
            receive_message(sock, bytearray(8), 8)
        self.assertEqual(ctx.exception.stage, "recv")
        self.assertIsInstance(ctx.exception.cause, ConnectionResetError)


if __name__ == "__main__":
    unittest.main()
