from session_registry import GameSessionRegistry


class TestGameSessionRegistry:
    def test_add_get_remove(self, make_session, countdowns):
        registry = GameSessionRegistry()
        session = registry.add(make_session())

        assert registry.get(session.id) is session
        assert len(registry) == 1
        assert registry.remove(session.id)
        assert registry.get(session.id) is None
        assert not registry.remove(session.id)

    def test_oldest_session_is_evicted_and_closed(self, make_session, countdowns):
        registry = GameSessionRegistry(max_sessions=2)
        oldest = registry.add(make_session())
        oldest.start('Ploy')
        registry.add(make_session())
        registry.add(make_session())

        assert len(registry) == 2
        assert registry.get(oldest.id) is None
        assert countdowns[0].cancelled
        assert not oldest.countdown_active

    def test_close_all(self, make_session, countdowns):
        registry = GameSessionRegistry()
        session = registry.add(make_session())
        session.start('Ploy')

        registry.close_all()
        assert len(registry) == 0
        assert countdowns[0].cancelled

