from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from runvault import db
from runvault.models import User
import uuid

auth = Blueprint('auth', __name__)

@auth.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    email = data.get('email')
    password = data.get('password')
    username = data.get('username')
    if not all([email, password, username]):
        return jsonify({'error': 'Email, password, and username are required'}), 400
    if len(str(username)) > 64 or len(str(email)) > 255:
        return jsonify({'error': 'Username or email is too long'}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 400

    user = User(username=username, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)
    current_app.logger.info(f"[register] user={user.id}")
    return jsonify({'user': user.to_dict()}), 201

@auth.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email')
    password = data.get('password')
    if not all([email, password]):
        return jsonify({'error': 'Email and password are required'}), 400

    user = User.query.filter_by(email=email).first()
    if user and user.check_password(password):
        login_user(user, remember=True)
        return jsonify({'user': user.to_dict()})
    return jsonify({'error': 'Invalid email or password'}), 401

@auth.route('/login-anonymous', methods=['POST'])
def login_anonymous():
    # Throwaway account so guests can still save runs and post scores
    anon_id = uuid.uuid4().hex
    user = User(username=f'player_{anon_id[:8]}', is_anonymous_account=True)
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)
    current_app.logger.info(f"[register-anonymous] user={user.id}")
    return jsonify({'user': user.to_dict()}), 201

@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})

@auth.route('/me')
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})
