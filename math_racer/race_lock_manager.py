from asyncio import Lock
from uuid import UUID


class RaceLockManager:
    def __init__(self):
        self.locks = {}  # one Lock per game_id
        self.registry_lock = Lock()  # protects self.locks

    async def lock(self, game_id: UUID) -> Lock:
        """Get the Lock of the specified game_id

        Args:
            game_id (UUID): ID to identify this race

        Returns:
            Lock: Lock that serializes the operations on this race
        """
        async with self.registry_lock:
            if game_id not in self.locks:
                self.locks[game_id] = Lock()
            return self.locks[game_id]

    async def cleanup(self, game_id: UUID):
        """Delete the Lock of the specified game_id

        Args:
            game_id (UUID): ID to identify this race
        """
        async with self.registry_lock:
            if game_id in self.locks:
                del self.locks[game_id]
