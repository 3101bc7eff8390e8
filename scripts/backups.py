import sys

from storage import get_data_dir, list_backups, restore_backup


def main():
    if len(sys.argv) < 2 or sys.argv[1] not in ('list', 'restore'):
        print("Usage: python scripts/backups.py list | restore <backup-name>")
        sys.exit(1)
    data_dir = get_data_dir()
    if sys.argv[1] == 'list':
        for name in list_backups(data_dir):
            print(name)
        return
    if len(sys.argv) < 3:
        print("Usage: python scripts/backups.py restore <backup-name>")
        sys.exit(1)
    try:
        source = restore_backup(sys.argv[2], data_dir)
    except FileNotFoundError as exc:
        print(exc)
        sys.exit(1)
    print(f"Restored {source} into {data_dir}")


if __name__ == "__main__":
    main()
