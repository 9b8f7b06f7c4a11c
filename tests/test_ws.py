from __future__ import annotations

import asyncio
import json
import logging

from routers.ws import ClientLogHandler, ConnectionManager


class _Socket:
	def __init__(self) -> None:
		self.sent = []

	async def accept(self) -> None:
		return None

	async def send_text(self, payload: str) -> None:
		self.sent.append(json.loads(payload))


def test_log_handler_keeps_broadcast_task_until_done():
	async def run():
		manager = ConnectionManager()
		sock = _Socket()
		await manager.connect(sock)
		handler = ClientLogHandler(manager)
		record = logging.LogRecord("pawpose", logging.INFO, __file__, 1, "[Pipeline] hello", None, None)
		handler.emit(record)
		pending = set(handler._tasks)
		await asyncio.gather(*pending)
		await asyncio.sleep(0)
		return sock, pending, handler

	sock, pending, handler = asyncio.run(run())
	assert len(pending) == 1
	assert handler._tasks == set()
	assert sock.sent == [{"type": "log", "level": "INFO", "msg": "[Pipeline] hello"}]


def test_log_handler_outside_event_loop_is_skipped():
	handler = ClientLogHandler(ConnectionManager())
	handler.emit(logging.LogRecord("pawpose", logging.INFO, __file__, 1, "x", None, None))
	assert handler._tasks == set()
