from .health import health_bp
from .auth import auth_bp
from .cameras import camera_bp
from .customers import customer_bp
from .rentals import rental_bp
from .availability import availability_bp
from .dashboard import dashboard_bp
