#!/usr/bin/env python3
"""
ArcTree Example Script

This script demonstrates the basic usage of the ArcTree library.

Author: Tim Hosking
GitHub: https://github.com/Munger
"""

import argparse
import os

from arctree import (
    ArchiveFolder, ArcTreeError, LocalFile, LocalFolder, ReadOnlyArchiveFolder, StorableType,
    create_archive,
)


def print_tree(folder, indent=0):
    """Print the folders and files below a folder."""
    for item in folder.list_items(StorableType.ALL):
        if isinstance(item, ReadOnlyArchiveFolder):
            print(f"{'  ' * indent}{item.name}/")
            print_tree(item, indent + 1)
        else:
            print(f"{'  ' * indent}{item.name} ({item.size} bytes)")


def list_contents(archive_path):
    """List the contents of an archive."""
    print(f"\nListing contents of: {archive_path}")
    print("-" * 50)

    try:
        with ReadOnlyArchiveFolder(source_file=LocalFile(archive_path)) as root:
            print_tree(root)
    except ArcTreeError as e:
        print(f"Error: {e}")


def read_file(archive_path, name):
    """Read and display a file at the top level of an archive."""
    print(f"\nReading file: {name} in {archive_path}")
    print("-" * 50)

    try:
        with ReadOnlyArchiveFolder(source_file=LocalFile(archive_path)) as root:
            with root.get_first_by_name(name).open_stream('r') as f:
                content = f.read()
        # Display the file content (limit to 500 chars if too large)
        if len(content) > 500:
            print(content[:500] + "... (truncated)")
        else:
            print(content)
    except ArcTreeError as e:
        print(f"Error: {e}")


def create_and_populate_archive(archive_path):
    """Create a new archive and add some files to it."""
    print(f"\nCreating archive: {archive_path}")
    print("-" * 50)

    try:
        directory, name = os.path.split(os.path.abspath(archive_path))
        with create_archive(LocalFolder(directory), name) as root:
            for file_name, content in (("file1.txt", "This is file 1 content"),
                                       ("file2.txt", "This is file 2 content")):
                with root.create_file(file_name).open_stream('w') as f:
                    f.write(content)

            # Create a subdirectory and add a file
            subdir = root.create_folder("subdir")
            with subdir.create_file("file3.txt").open_stream('w') as f:
                f.write("This is file 3 in a subdirectory")

            root.flush()
        print(f"Added files to {archive_path}")
    except ArcTreeError as e:
        print(f"Error: {e}")


def delete_item(archive_path, name):
    """Delete a top-level file or folder from an archive and write the result back."""
    print(f"\nDeleting {name} from {archive_path}")
    print("-" * 50)

    try:
        with ArchiveFolder(source_file=LocalFile(archive_path)) as root:
            root.delete(root.get_first_by_name(name))
            root.flush()
        print(f"Deleted {name}")
    except ArcTreeError as e:
        print(f"Error: {e}")


def main():
    """Main function demonstrating ArcTree features."""
    parser = argparse.ArgumentParser(description="ArcTree Example Script")
    parser.add_argument("--create", help="Create and populate an archive")
    parser.add_argument("--list", help="List contents of an archive")
    parser.add_argument("--read", nargs=2, metavar=("ARCHIVE", "NAME"), help="Read a file")
    parser.add_argument("--delete", nargs=2, metavar=("ARCHIVE", "NAME"), help="Delete a file or folder")
    parser.add_argument("--demo", action="store_true", help="Run a full demonstration")

    args = parser.parse_args()

    if args.list:
        list_contents(args.list)
    elif args.read:
        read_file(*args.read)
    elif args.create:
        create_and_populate_archive(args.create)
    elif args.delete:
        delete_item(*args.delete)
    elif args.demo:
        for test_archive in ("test_archive.zip", "test_archive.tar.gz"):
            create_and_populate_archive(test_archive)
            list_contents(test_archive)
            read_file(test_archive, "file1.txt")
            delete_item(test_archive, "subdir")
            list_contents(test_archive)

        print("\nDemonstration complete!")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
