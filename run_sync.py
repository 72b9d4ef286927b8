from dotenv import load_dotenv

# Load environment variables from .env before the package reads its settings
load_dotenv()


def main() -> int:
    from prahestate.db import Base, engine
    from prahestate.errors import PrahEstateError
    from prahestate.scheduler import get_coordinator
    import prahestate.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    coordinator = get_coordinator()
    print("Running one estate sync cycle...")
    try:
        result = coordinator.run_now()
    except PrahEstateError as e:
        print(f"Sync failed: {e}")
        return 1
    finally:
        coordinator.shutdown()

    print(
        f"Sync completed: {result.total_items} fetched, {result.new_items} new, "
        f"{result.updated_items} updated, {result.deleted_items} deactivated, "
        f"{result.skipped_items} skipped"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
