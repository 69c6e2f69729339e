import sys
import os

# Add your project directory to the sys.path
project_home = '/home/YOUR_USERNAME/fitness-tracker'
if project_home not in sys.path:
    sys.path.insert(0, project_home)

# Set the working directory
os.chdir(project_home)

# Production settings unless the host says otherwise
os.environ.setdefault('FLASK_ENV', 'production')

# Import your Flask app
from app import app as application, init_db

init_db(application)
