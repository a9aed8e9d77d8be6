from lanmon.services.chat_relay import ChatRelay
from tests.mocks.fake_redis import UnreachableRedis


class TestChatRelay:
    async def test_recent_messages_newest_first(self, client):
        response = await client.get("/api/redis/chat")
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 3
        first = data["messages"][0]
        assert first["id"] == "1700000002000-0"
        assert first["from"] == "siegbert"
        assert first["text"] == "next ticket"

    async def test_count_limits_messages(self, client):
        data = (await client.get("/api/redis/chat?count=1")).json()
        assert data["count"] == 1

    async def test_count_out_of_range(self, client):
        response = await client.get("/api/redis/chat?count=0")
        assert response.status_code == 400

    async def test_presence(self, client):
        response = await client.get("/api/redis/status")
        assert response.status_code == 200
        agents = response.json()["agents"]
        assert agents["siegbert"] == {
            "status": "busy",
            "lastTask": "TASK-004",
            "lastActive": "2026-10-19T08:00:02Z",
        }
        assert agents["eugene"]["lastTask"] == "review"
        assert agents["eugene"]["lastActive"] == "2026-10-19T07:59:00Z"

    async def test_unreachable_redis(self, client, app_with_db):
        app_with_db.state.chat_relay = ChatRelay(agents=["siegbert"], client=UnreachableRedis())
        response = await client.get("/api/redis/chat")
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "relay_error"
