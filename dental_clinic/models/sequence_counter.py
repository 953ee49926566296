from dental_clinic.extensions import db


class SequenceCounter(db.Model):
    """One row per display-serial kind; value is the last number handed out."""
    __tablename__ = 'sequence_counters'

    kind = db.Column(db.String(32), primary_key=True)
    value = db.Column(db.BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<SequenceCounter {self.kind}={self.value}>"
