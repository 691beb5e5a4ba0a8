from datetime import datetime, timezone

import pytest

from models import GameMode, HighScoreEntry, Song, rank_scores


class TestGameMode:
    @pytest.mark.parametrize('value,expected', [
        (None, GameMode.TITLE),
        ('', GameMode.TITLE),
        ('title', GameMode.TITLE),
        ('normal', GameMode.TITLE),
        ('Artist', GameMode.ARTIST),
        (GameMode.ARTIST, GameMode.ARTIST),
    ])
    def test_parse(self, value, expected):
        assert GameMode.parse(value) == expected

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            GameMode.parse('lyrics')


class TestSong:
    def test_wire_format(self):
        song = Song('2', 'คิดถึง', 'Bodyslam', 'preview', 'cover')
        assert song.to_dict() == {'id': '2', 'name': 'คิดถึง', 'artist': 'Bodyslam',
                                  'preview_url': 'preview', 'image': 'cover'}

    def test_hidden_answer(self):
        data = Song('2', 'คิดถึง', 'Bodyslam', 'preview', 'cover').to_dict(reveal=False)
        assert data == {'id': '2', 'preview_url': 'preview', 'image': 'cover'}

    def test_from_dict_accepts_alternate_keys(self):
        song = Song.from_dict({'id': 7, 'title': 'X', 'artist': 'Y',
                               'previewUrl': 'p', 'imageUrl': 'i'})
        assert song == Song('7', 'X', 'Y', 'p', 'i')


class TestHighScoreEntry:
    def test_from_dict(self):
        entry = HighScoreEntry.from_dict({'id': 5, 'playerName': 'Ploy', 'score': 120.0,
                                          'mode': 'artist', 'date': '2025-01-15T10:30:00Z'})
        assert entry.id == '5'
        assert entry.player_name == 'Ploy'
        assert entry.score == 120
        assert entry.mode == GameMode.ARTIST
        assert entry.timestamp == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_missing_date_is_now(self):
        entry = HighScoreEntry.from_dict({'name': 'Ploy', 'score': 1})
        assert entry.timestamp.tzinfo is not None

    @pytest.mark.parametrize('score', [None, '10', True, [1]])
    def test_invalid_score(self, score):
        with pytest.raises(ValueError):
            HighScoreEntry.from_dict({'name': 'Ploy', 'score': score})

    def test_to_dict(self):
        entry = HighScoreEntry('Ploy', 90, GameMode.TITLE,
                               datetime(2025, 1, 15, tzinfo=timezone.utc), id='a')
        assert entry.to_dict() == {'id': 'a', 'name': 'Ploy', 'score': 90, 'mode': 'title',
                                   'date': '2025-01-15T00:00:00+00:00'}


def test_rank_scores_is_stable_and_limited():
    entries = [HighScoreEntry(n, s) for n, s in [('a', 10), ('b', 30), ('c', 10), ('d', 20)]]
    ranked = rank_scores(entries, limit=3)
    assert [e.player_name for e in ranked] == ['b', 'd', 'a']
