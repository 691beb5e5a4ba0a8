# routes/__init__.py
"""
Blueprint registration helper
"""

def register_blueprints(app):
    """Register all application blueprints"""
    from routes.health import health_bp
    from routes.songs import songs_bp
    from routes.scores import scores_bp
    from routes.spotify_auth import spotify_auth_bp
    from routes.games import games_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(songs_bp)
    app.register_blueprint(scores_bp)
    app.register_blueprint(spotify_auth_bp)
    app.register_blueprint(games_bp)
