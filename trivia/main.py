from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from .models import Account
from .services.game import get_services

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the trivia game server!'})


@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password:
        return jsonify({'success': False, 'error': 'Email and password are required'}), 400
    account = Account.query.filter_by(email=email).first()
    if not account or not account.check_password(password):
        return jsonify({'success': False, 'error': 'Invalid credentials. Please contact admin to get your login details.'}), 401
    login_user(account, remember=True)
    # First login creates the profile; later logins only mark it active
    profile = get_services().scores.ensure_profile(account.uid, account.email, is_admin=account.is_admin)
    return jsonify({'success': True, 'user': profile.to_dict()})


@main.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200

    @login_required
    def protected_check():
        profile = get_services().scores.require_profile(current_user.uid)
        return jsonify({'success': True, 'user': profile.to_dict()})

    return protected_check()


@main.route('/me')
@login_required
def me():
    return jsonify(get_services().scores.require_profile(current_user.uid).to_dict())


@main.route('/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})
