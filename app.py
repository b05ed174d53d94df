import os
import logging
import secrets
import sys
from datetime import datetime, timedelta
from functools import wraps
from dotenv import load_dotenv
from flask import Flask, Blueprint, render_template, request, redirect, url_for, flash, abort, current_app, g
from flask_login import LoginManager, login_user, logout_user, login_required, current_user
from store import StoreHandle, DuplicateName, NotFound
from user import User, UserRole, IncorrectPassword
from post import Post

load_dotenv()

# Flask-Login setup
login_manager = LoginManager()
login_manager.login_view = 'views.login'

views = Blueprint('views', __name__)

BADGE_COMMANDS = {
    'GrantBlue': True,
    'RemoveBlue': False,
}


def create_app(store=None, config=None):
    """Build the application around ``store`` (a fresh MemStore if omitted)."""
    app = Flask(__name__)

    # Configuration
    # Without SECRET_KEY every restart invalidates existing sessions.
    app.secret_key = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    app.config['ADMIN_USERNAME'] = os.getenv("ADMIN_USERNAME") or 'admin'
    app.config['ADMIN_PASSWORD'] = os.getenv("ADMIN_PASSWORD")
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(hours=24)
    app.config['REMEMBER_COOKIE_DURATION'] = timedelta(hours=24)
    if config:
        app.config.update(config)

    app.extensions['store'] = StoreHandle(store)

    login_manager.init_app(app)
    app.teardown_appcontext(close_db)
    app.add_template_filter(format_time)
    app.register_blueprint(views)

    app.config['GENERATED_ADMIN_PASSWORD'] = seed_admin(app)
    return app


@login_manager.user_loader
def load_user(user_id):
    try:
        return get_db().get_user_by_id(int(user_id))
    except (ValueError, NotFound):
        return None


def get_db():
    """Get the store for the current request, taking its lock on first use"""
    if 'db' not in g:
        g.db = current_app.extensions['store'].acquire()
    return g.db


def close_db(error):
    """Release the store lock at end of request"""
    db = g.pop('db', None)
    if db is not None:
        current_app.extensions['store'].release()


def seed_admin(app):
    """Create the admin account unless a user with that name already exists.

    Returns the generated password when ADMIN_PASSWORD is unset, else None.
    """
    name = app.config['ADMIN_USERNAME']
    password = app.config.get('ADMIN_PASSWORD')
    generated = None

    with app.extensions['store'] as db:
        if any(u.name == name for u in db.list_users()):
            return None
        if not password:
            password = generated = secrets.token_urlsafe(12)
            app.logger.warning(f"ADMIN_PASSWORD not set, generated a password for '{name}'")
        db.add_user(User.new(name, password, role=UserRole.ADMIN, verified=True))

    app.logger.info(f"Admin user '{name}' created")
    return generated


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_admin:
            abort(401)
        return view(*args, **kwargs)
    return wrapped


def format_time(timestamp):
    """Render a unix timestamp like 'Mar 4, 2023 9:05:01' in local time."""
    dt = datetime.fromtimestamp(timestamp)
    hour = dt.hour % 12 or 12
    return f"{dt:%b} {dt.day}, {dt.year} {hour}:{dt:%M:%S}"


# Routes
@views.route('/')
def index():
    db = get_db()
    posts = sorted(db.list_posts(), key=lambda p: (p.timestamp, p.id), reverse=True)
    user_map = {u.id: u for u in db.list_users()}

    return render_template('index.html', posts=posts, user_map=user_map)

@views.route('/register', methods=['GET', 'POST'])
def register():
    if current_user.is_authenticated:
        return redirect(url_for('views.index'))

    if request.method == 'POST':
        username = request.form.get('username', '')
        password = request.form.get('password', '')

        if not username or not password:
            flash('Username and password are required', 'error')
            return render_template('register.html')

        try:
            user = get_db().add_user(User.new(username, password))
        except DuplicateName as e:
            current_app.logger.info(f"Registration rejected: {e}")
            flash(f'failed to add user: {e}', 'error')
            return render_template('register.html')

        login_user(user, remember=True)
        current_app.logger.info(f"Registered user '{user.name}' with id {user.id}")
        return redirect(url_for('views.index'))

    return render_template('register.html')

@views.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('views.index'))

    if request.method == 'POST':
        username = request.form.get('username', '')
        password = request.form.get('password', '')

        try:
            user = get_db().get_user_by_name(username)
        except NotFound:
            user = None

        if user and user.check_password(password):
            login_user(user, remember=True)
            current_app.logger.info(f"User '{username}' logged in")
            return redirect(url_for('views.index'))

        current_app.logger.info(f"Failed login for '{username}'")
        flash('incorrect username/password', 'error')

    return render_template('login.html')

@views.route('/logout', methods=['POST'])
def logout():
    if current_user.is_authenticated:
        current_app.logger.info(f"User '{current_user.name}' logged out")
        logout_user()
    return redirect(url_for('views.index'))

@views.route('/create_post', methods=['GET', 'POST'])
@login_required
def create_post():
    if request.method == 'POST':
        contents = request.form.get('contents', '').strip()
        if not contents:
            flash('Post cannot be empty', 'error')
            return render_template('create_post.html')

        post = get_db().add_post(Post.new(current_user, contents))
        current_app.logger.info(f"User '{current_user.name}' created post {post.id}")
        return redirect(url_for('views.index'))

    return render_template('create_post.html')

@views.route('/profile/<int:user_id>')
def profile(user_id):
    try:
        user = get_db().get_user_by_id(user_id)
    except NotFound:
        abort(404, description=f"no user with id {user_id}")

    return render_template('profile.html', profile_user=user)

@views.route('/settings', methods=['GET', 'POST'])
@login_required
def settings():
    if request.method == 'POST':
        db = get_db()
        user = db.get_user_by_name(current_user.name)

        newpass = request.form.get('newpass', '')
        if newpass:
            try:
                user.change_password(request.form.get('currpass', ''), newpass)
            except IncorrectPassword as e:
                flash(str(e), 'error')
                return redirect(url_for('views.settings'))
        user.bio = request.form.get('bio', '')

        db.update_user(user)
        flash('Successfully updated settings', 'success')
        return redirect(url_for('views.settings'))

    return render_template('settings.html')

@views.route('/admin')
@admin_required
def admin():
    return render_template('admin/index.html')

@views.route('/admin/users', methods=['GET', 'POST'])
@admin_required
def admin_users():
    db = get_db()

    if request.method == 'POST':
        try:
            user_id = int(request.form.get('id', ''))
        except ValueError:
            abort(400)
        verified = BADGE_COMMANDS.get(request.form.get('cmd'))
        if verified is None:
            abort(400)

        try:
            user = db.get_user_by_id(user_id)
        except NotFound:
            abort(400)

        user.verified = verified
        db.update_user(user)
        current_app.logger.info(f"Admin '{current_user.name}' set verified={verified} on user {user_id}")
        return redirect(url_for('views.admin_users'))

    return render_template('admin/users.html', users=db.list_users())

if __name__ == '__main__':
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    app = create_app()
    if app.config['GENERATED_ADMIN_PASSWORD']:
        print(f"Admin user '{app.config['ADMIN_USERNAME']}' password: {app.config['GENERATED_ADMIN_PASSWORD']}", file=sys.stderr)
    app.run(host=os.getenv("HOST") or '127.0.0.1', port=int(os.getenv("PORT") or 1447))
