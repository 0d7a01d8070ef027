from flask import Blueprint, jsonify, current_app
from flask_login import current_user, login_required
from extensions import limiter
from forms import bind, OtpRequestForm, OtpVerifyForm, SignupRequestForm, SignupForm
from utils.request_helpers import get_payload
from utils.session_auth import OtpLogin, end_session
auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _otp_limit():
    return current_app.config.get('OTP_RATE_LIMIT', '5 per minute')


@auth_bp.route('/request-otp', methods=['POST'])
@limiter.limit(_otp_limit)
def request_otp():
    form = bind(OtpRequestForm, get_payload())
    OtpLogin.request_login(form.email.data)
    return jsonify({'message': 'OTP sent to your email.'})


@auth_bp.route('/verify-otp', methods=['POST'])
@limiter.limit(_otp_limit)
def verify_otp():
    form = bind(OtpVerifyForm, get_payload())
    user, token = OtpLogin.verify_login(form.email.data, form.otp.data)
    current_app.logger.info('User %s logged in', user.id)
    return jsonify({'message': 'Login successful', 'session_id': token, 'user': user.to_dict()})


@auth_bp.route('/signup/request-otp', methods=['POST'])
@limiter.limit(_otp_limit)
def signup_request_otp():
    form = bind(SignupRequestForm, get_payload())
    OtpLogin.request_signup(form.email.data)
    return jsonify({'message': 'OTP sent to your email.'})


@auth_bp.route('/signup/verify-otp', methods=['POST'])
@limiter.limit(_otp_limit)
def signup_verify_otp():
    form = bind(SignupForm, get_payload())
    user = OtpLogin.verify_signup(form.data, form.otp.data)
    return (jsonify({'message': 'Signup successful. Your account is awaiting admin approval.',
                     'user': user.to_dict()}), 201)


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'authenticated': True, 'user': current_user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    end_session(current_user)
    return jsonify({'message': 'Logged out'})
