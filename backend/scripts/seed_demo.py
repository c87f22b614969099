from trainingdb.database import Base, WriteSessionLocal, write_engine
from trainingdb.apps.training import services


def run():
    Base.metadata.create_all(bind=write_engine)
    db = WriteSessionLocal()
    try:
        services.load_sample_data(db)
        db.commit()
    finally:
        db.close()
    print("Seeded training tracker sample data")


if __name__ == "__main__":
    run()
