from memory_matchers import db
import time
import uuid


def _now():
    return time.time()


class Score(db.Model):
    """One completed round. Rows are only ever inserted."""
    __tablename__ = 'score'
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(64), nullable=False)
    # Shadows the time module inside the class body; defaults go through _now
    time = db.Column(db.Float, nullable=False)
    game = db.Column(db.String(16), nullable=False, index=True)  # grid label, e.g. "3x4"
    created_at = db.Column(db.Float, nullable=False, default=_now, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'time': self.time,
            'game': self.game,
        }
