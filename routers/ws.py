"""WebSocket endpoint and ConnectionManager. Route: /ws."""
import asyncio
import json
import logging
from typing import Any, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter(tags=["ws"])


class ConnectionManager:
	def __init__(self) -> None:
		self._clients: Set[WebSocket] = set()
		self._lock = asyncio.Lock()

	@property
	def client_count(self) -> int:
		return len(self._clients)

	async def connect(self, websocket: WebSocket) -> None:
		await websocket.accept()
		async with self._lock:
			self._clients.add(websocket)

	async def disconnect(self, websocket: WebSocket) -> None:
		async with self._lock:
			self._clients.discard(websocket)

	async def broadcast_json(self, message: Dict[str, Any]) -> None:
		payload = json.dumps(message, separators=(",", ":"))
		async with self._lock:
			if not self._clients:
				return
			send_tasks = []
			for ws in list(self._clients):
				send_tasks.append(self._send(ws, payload))
			await asyncio.gather(*send_tasks, return_exceptions=True)

	async def _send(self, ws: WebSocket, payload: str) -> None:
		try:
			await ws.send_text(payload)
		except (WebSocketDisconnect, RuntimeError, OSError):
			# Dead client; drop it (lock is held by broadcast_json).
			self._clients.discard(ws)


class ClientLogHandler(logging.Handler):
	"""
	Forward log records to WebSocket clients as {"type": "log", "msg": ...}.
	Fire-and-forget; records emitted outside the event loop thread are skipped.
	"""

	def __init__(self, manager: ConnectionManager, level: int = logging.INFO) -> None:
		super().__init__(level=level)
		self._manager = manager
		self._tasks: Set[asyncio.Task] = set()

	def emit(self, record: logging.LogRecord) -> None:
		try:
			loop = asyncio.get_running_loop()
		except RuntimeError:
			return
		try:
			msg = self.format(record)
		except Exception:
			self.handleError(record)
			return
		task = loop.create_task(self._manager.broadcast_json({"type": "log", "level": record.levelname, "msg": msg}))
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)


manager = ConnectionManager()


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
	await manager.connect(websocket)
	try:
		while True:
			# Keep connection alive; client doesn't need to send anything
			await websocket.receive_text()
	except WebSocketDisconnect:
		pass
	finally:
		await manager.disconnect(websocket)
