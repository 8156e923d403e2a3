# /run.py
import os

from app import create_app

# Development config unless APP_CONFIG names another (Production, Testing)
app = create_app(os.getenv("APP_CONFIG", "Development"))

if __name__ == "__main__":
    app.run(debug=app.config.get("DEBUG", False))
