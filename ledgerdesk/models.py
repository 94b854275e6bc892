import uuid
from werkzeug.security import generate_password_hash, check_password_hash
from ledgerdesk import db

USER_ACCESS_LEVELS = ('Admin', 'Can Edit', 'Can View')

user_access = db.Enum(*USER_ACCESS_LEVELS, name='user_access')


def _uuid():
    return str(uuid.uuid4())


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    username = db.Column(db.String(50), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True)
    display_name = db.Column(db.String(100))
    user_access = db.Column(user_access, nullable=False, default='Can View')
    access_menus = db.Column(db.JSON, default=list)
    employee_id = db.Column(db.String(64))  # id of the matching document in 'employees'
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.TIMESTAMP(timezone=True), server_default=db.func.current_timestamp())

    def set_password(self, password):
        self.password = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password, password)


class Document(db.Model):
    """
    One document of the record store. The body is the whole JSON document,
    nested ledger arrays included; `version` is bumped by every write and
    checked by SQLAlchemy on UPDATE so concurrent writers cannot silently
    overwrite each other.
    """
    __tablename__ = 'documents'

    collection = db.Column(db.String(64), primary_key=True)
    doc_id = db.Column(db.String(64), primary_key=True)
    body = db.Column(db.JSON, nullable=False, default=dict)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.TIMESTAMP(timezone=True), server_default=db.func.current_timestamp())
    updated_at = db.Column(db.TIMESTAMP(timezone=True), server_default=db.func.current_timestamp(), onupdate=db.func.current_timestamp())

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        db.Index('ix_documents_collection', 'collection'),
    )
