import argparse
from app import create_app
from extensions import db
from models.user import User, Role, AccountStatus

def parse_args():
    p = argparse.ArgumentParser(description='Create or update an admin user')
    p.add_argument('--email', '-e', required=True, help='Email address used for OTP login')
    p.add_argument('--full-name', '-n', required=False, help='Full name')
    p.add_argument('--department', '-d', required=False, help='Department')
    return p.parse_args()

def main():
    args = parse_args()
    email = args.email.strip().lower()
    app = create_app()
    with app.app_context():
        user = User.query.filter_by(email=email).first()
        if user:
            user.full_name = args.full_name or user.full_name
            user.department = args.department or user.department
            user.role = Role.ADMIN
            user.account_status = AccountStatus.ACTIVE
        else:
            user = User(email=email, full_name=args.full_name or 'Administrator', department=args.department, role=Role.ADMIN, account_status=AccountStatus.ACTIVE)
            db.session.add(user)
        db.session.commit()
        app.logger.info('Admin account ready: %s (id %s)', user.email, user.id)
if __name__ == '__main__':
    main()
