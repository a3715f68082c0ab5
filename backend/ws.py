from datetime import datetime, timezone

from fastapi import WebSocket

from models import Bed


class ConnectionManager:
    def __init__(self):
        self.ward_connections: dict[str, list[WebSocket]] = {}
        self.board_connections: list[WebSocket] = []

    async def connect_ward(self, ward_id: str, ws: WebSocket):
        await ws.accept()
        key = ward_id.strip().upper()
        self.ward_connections.setdefault(key, []).append(ws)

    def disconnect_ward(self, ward_id: str, ws: WebSocket):
        key = ward_id.strip().upper()
        conns = self.ward_connections.get(key, [])
        if ws in conns:
            conns.remove(ws)
        if not conns and key in self.ward_connections:
            del self.ward_connections[key]

    async def broadcast_ward(self, ward_id: str, data: dict):
        key = ward_id.strip().upper()
        for ws in list(self.ward_connections.get(key, [])):
            try:
                await ws.send_json(data)
            except Exception:
                self.disconnect_ward(ward_id, ws)

    async def connect_board(self, ws: WebSocket):
        await ws.accept()
        self.board_connections.append(ws)

    def disconnect_board(self, ws: WebSocket):
        if ws in self.board_connections:
            self.board_connections.remove(ws)

    async def broadcast_board(self, data: dict):
        for ws in list(self.board_connections):
            try:
                await ws.send_json(data)
            except Exception:
                self.disconnect_board(ws)

    async def broadcast_beds(self, event: str, beds: list[Bed], patient_id: str | None = None):
        """Push each changed bed to its ward channel and to the bed board."""
        for bed in beds:
            payload = {
                "event": event,
                "bed": bed.model_dump(mode="json"),
                "patient_id": patient_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            await self.broadcast_ward(bed.ward_id, payload)
            await self.broadcast_board(payload)


manager = ConnectionManager()
