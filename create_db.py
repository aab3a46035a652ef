from leavedesk import app, db
from leavedesk.models import User, SystemSetting
import os

DEFAULT_SETTINGS = {
    'CL_ANNUAL_ALLOWANCE': ('30', 'leave'),
    'DL_ANNUAL_LIMIT': ('10', 'leave'),
    'DEFAULT_SCHOLARSHIP_AMOUNT': ('30000', 'scholarship'),
}

with app.app_context():
    db.create_all()
    for key, (value, group) in DEFAULT_SETTINGS.items():
        if not SystemSetting.query.filter_by(key=key).first():
            db.session.add(SystemSetting(key=key, value=value, group=group))
    admin_user = os.environ.get('ADMIN_USERNAME')
    if admin_user and not User.query.filter_by(username=admin_user).first():
        db.session.add(User(username=admin_user, name=os.environ.get('ADMIN_NAME', 'Administrator'),
                            role='admin', is_approved=True))
    db.session.commit()
