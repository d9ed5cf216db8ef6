from whosaid import db


class GameSessionRecord(db.Model):
    """One serialized game session per code."""
    __tablename__ = 'game_session'
    code = db.Column(db.String(6), primary_key=True)
    payload = db.Column(db.Text, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    # Epoch seconds
    created_at = db.Column(db.Float, nullable=False)
    expires_at = db.Column(db.Float, nullable=False, index=True)
