from game.tests.mocks.repository import InMemoryGameRepository, InMemoryRosterProvider

__all__ = ["InMemoryGameRepository", "InMemoryRosterProvider"]
