# create.py - storage setup: database tables and upload buckets
from jobtracker import create_app
from jobtracker.extensions import db
from jobtracker.services.storage_service import ensure_buckets


def main(app=None):
    app = app or create_app()
    with app.app_context():
        db.create_all()
        buckets = (app.config["RESUMES_BUCKET"], app.config["DOCUMENTS_BUCKET"])
        ensure_buckets(*buckets)
        for b in buckets:
            print(f"Bucket ready: {b}")
        print("Storage setup complete.")

if __name__ == "__main__":
    main()
