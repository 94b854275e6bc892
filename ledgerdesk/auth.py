from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity, get_jwt
from sqlalchemy.exc import SQLAlchemyError
from ledgerdesk import db, jwt
from ledgerdesk.access import MENU_NAMES
from ledgerdesk.models import User, USER_ACCESS_LEVELS
import logging

logger = logging.getLogger(__name__)

auth = Blueprint('auth', __name__)


def _claims(user):
    return {
        "user_name": user.display_name or user.username,
        "user_access": user.user_access,
        "access_menus": list(user.access_menus or []),
    }


@auth.route('/login', methods=['POST'])
def login():
    data = request.json or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user and user.is_active and user.check_password(data.get('password') or ''):
        access_token = create_access_token(identity=user.id, additional_claims=_claims(user))
        logger.info(f"User {user.username} logged in")
        return jsonify(token=access_token, user_access=user.user_access,
                       access_menus=list(user.access_menus or [])), 200
    logger.info(f"Failed login for {data.get('username')}")
    return jsonify({"error": "Invalid credentials"}), 401


@auth.route('/register', methods=['POST'])
@jwt_required(optional=True)
def register():
    """The first user may register freely and becomes Admin; later ones need an Admin token."""
    data = request.json or {}
    first_user = User.query.first() is None
    if not first_user and get_jwt().get('user_access') != 'Admin':
        return jsonify({"error": "Only an Admin can add users"}), 403

    if not data.get('username') or not data.get('password'):
        return jsonify({"error": "Username and password are required"}), 400
    if User.query.filter_by(username=data['username']).first():
        return jsonify({"error": "Username already exists"}), 400

    user_access = 'Admin' if first_user else data.get('user_access', 'Can View')
    if user_access not in USER_ACCESS_LEVELS:
        return jsonify({"error": f"Invalid user_access: {user_access}"}), 400
    menus = [m for m in data.get('access_menus') or [] if m in MENU_NAMES]

    user = User(
        username=data['username'],
        email=data.get('email'),
        display_name=data.get('display_name'),
        user_access=user_access,
        access_menus=menus,
        employee_id=data.get('employee_id'),
    )
    user.set_password(data['password'])
    try:
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to register user {data['username']}: {e}")
        return jsonify({"error": "Failed to register user"}), 500
    logger.info(f"User {user.username} registered with {user.user_access} access")
    return jsonify({"message": "User registered successfully", "id": user.id}), 201


@auth.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    # tokens simply expire; there is no server-side blocklist
    return jsonify({"message": "Successfully logged out"}), 200


@auth.route('/protected', methods=['GET'])
@jwt_required()
def protected():
    user = db.session.get(User, get_jwt_identity())
    if user is None:
        return jsonify({"error": "User not found"}), 404
    return jsonify(logged_in_as=user.username, user_access=user.user_access), 200


@jwt.token_in_blocklist_loader
def check_if_token_revoked(jwt_header, jwt_payload):
    return False
