import os
from app import create_app

# ----------------------
# Create app instance
# ----------------------
app = create_app()

# ----------------------
# Local development
# ----------------------
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug_mode = app.config.get("DEBUG", True)
    app.run(debug=debug_mode, host="0.0.0.0", port=port)
