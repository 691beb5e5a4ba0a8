from player_profile import PlayerProfile


class TestPlayerProfile:
    def test_no_profile_yet(self, tmp_path):
        assert PlayerProfile(tmp_path / 'player.json').load_name() is None

    def test_remembers_name(self, tmp_path):
        path = tmp_path / 'profile' / 'player.json'
        PlayerProfile(path).save_name('  Ploy ')
        assert PlayerProfile(path).load_name() == 'Ploy'

    def test_unreadable_profile(self, tmp_path):
        path = tmp_path / 'player.json'
        path.write_text('[1, 2', encoding='utf-8')
        assert PlayerProfile(path).load_name() is None

    def test_profile_without_name(self, tmp_path):
        path = tmp_path / 'player.json'
        path.write_text('{"name": "   "}', encoding='utf-8')
        assert PlayerProfile(path).load_name() is None

    def test_blank_name_reads_back_as_none(self, tmp_path):
        path = tmp_path / 'player.json'
        PlayerProfile(path).save_name('   ')
        assert PlayerProfile(path).load_name() is None
