#!/usr/bin/env python3
"""
Play the song quiz in a terminal

Loads songs from a running backend (or the built-in Thai song list when it
is unreachable), plays one game with a real countdown, and saves the final
score back to the backend, or to a local file when that fails.

Preview clips are printed as URLs; open them in a browser to listen.
"""

import argparse
import logging

from script_base import ScriptBase, run_script

from game_session import GameSession, GameState, InvalidTransitionError
from models import GameMode, RoundOutcome
from player_profile import PlayerProfile
from score_store import FallbackScoreStore, LocalScoreStore, RemoteScoreStore
from song_provider import FallbackSongSource, RemoteSongSource, SongProvider

SAVE_WAIT_SECONDS = 15


def positive_int(text):
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


class ConsoleAudioPlayer:
    """Prints the preview URL for the player to open"""

    def play(self, url):
        print(f"\n  Preview: {url or '(no preview available)'}")

    def stop(self):
        pass


def ask_player_name(profile, name_arg=None):
    name = (name_arg or '').strip()
    if not name:
        saved = profile.load_name()
        prompt = f"Your name [{saved}]: " if saved else "Your name: "
        while not name:
            name = input(prompt).strip() or (saved or '')
    profile.save_name(name)
    return name


def print_result(session, result):
    song = result.song
    if result.outcome == RoundOutcome.TIMEOUT:
        print("  Time's up!")
    elif result.outcome == RoundOutcome.SKIP:
        print("  Skipped.")
    elif result.correct:
        print(f"  Correct! +{result.points_awarded} points")
    else:
        print("  Wrong.")
    print(f"  It was '{song.title}' by {song.artist}")
    print(f"  Score: {session.score}")


def play_rounds(session):
    """Run rounds until the game reaches the end state"""
    while session.state != GameState.END:
        song_number = session.current_index + 1
        print(f"\nRound {song_number}/{session.total_rounds} "
              f"- you have {session.round_seconds} seconds")
        label = 'artist' if session.mode == GameMode.ARTIST else 'song title'
        answer = input(f"  Guess the {label} (empty or 'skip' to skip): ").strip()

        # The countdown may have ended the round while we were waiting for input
        if session.state == GameState.PLAYING:
            try:
                if not answer or answer.lower() == 'skip':
                    session.skip()
                else:
                    session.submit_guess(answer)
            except InvalidTransitionError:
                # Timed out between the check and the call
                pass

        print_result(session, session.results[-1])
        input("  Press Enter to continue...")
        session.continue_game()


def print_scores(entries):
    if not entries:
        print("\nNo high scores yet")
        return
    print("\nHIGH SCORES")
    for position, entry in enumerate(entries, 1):
        print(f"{position:>3}. {entry.player_name:<20} {entry.score:>6}  ({entry.mode.value})")


def main():
    script = ScriptBase(
        name="play_quiz",
        description="Play the song quiz in the terminal",
        epilog="""
Examples:
  python play_quiz.py
  python play_quiz.py --genre rock --mode artist
  python play_quiz.py --api-url https://quiz.example.com --rounds 5
        """,
        console_level=logging.WARNING
    )
    script.add_api_url_arg()
    script.parser.add_argument('--genre', help='Genre playlist to play (thai, pop, rock, hiphop, kpop)')
    script.parser.add_argument('--mode', choices=['title', 'artist'], default='title',
                               help='Guess song titles or artists (default: title)')
    script.parser.add_argument('--rounds', type=positive_int, default=10, help='Number of rounds (default: 10)')
    script.parser.add_argument('--seconds', type=positive_int, default=10, help='Seconds per round (default: 10)')
    script.parser.add_argument('--name', help='Player name (default: saved profile)')
    script.add_debug_arg()
    args = script.parse_args()

    script.print_header("SONG QUIZ")

    provider = SongProvider([RemoteSongSource(args.api_url, genre=args.genre), FallbackSongSource()])
    songs = provider.get_songs()
    if provider.last_source == 'fallback':
        print("Backend unavailable, playing with the built-in song list")

    session = GameSession(
        mode=args.mode,
        round_count=args.rounds,
        round_seconds=args.seconds,
        score_store=FallbackScoreStore(RemoteScoreStore(args.api_url), LocalScoreStore()),
        audio=ConsoleAudioPlayer(),
    )
    session.load_songs(songs)

    player_name = ask_player_name(PlayerProfile(), args.name)
    games_played = 0

    try:
        while True:
            session.start(player_name)
            play_rounds(session)
            games_played += 1

            print(f"\nGame over! {player_name}, you scored {session.score}")
            status = session.wait_for_save(SAVE_WAIT_SECONDS)
            if status == 'failed':
                print("Could not save your score")

            choice = input("\n[r]estart, [s]cores, or [q]uit? ").strip().lower()
            if choice.startswith('s'):
                print_scores(session.show_scores())
                session.back()
                choice = input("\n[r]estart or [q]uit? ").strip().lower()
            if not choice.startswith('r'):
                break
            session.restart()
    finally:
        session.close()

    script.print_summary({
        'player': player_name,
        'games_played': games_played,
        'last_score': session.score,
        'songs_from': provider.last_source,
    })
    return True


if __name__ == "__main__":
    run_script(main)
