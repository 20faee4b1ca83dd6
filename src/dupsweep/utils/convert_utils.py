"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

utils/convert_utils.py
"""


class ConvertUtils:
    @staticmethod
    def bytes_to_human(size_bytes: int) -> str:
        """
        Convert bytes to human-readable string (e.g., 1.50KB, 3.20MB).
        """
        if size_bytes < 0:
            return "0B"

        units = ["B", "KB", "MB", "GB", "TB", "PB"]
        for unit in units:
            if size_bytes < 1024:
                return f"{size_bytes:.2f}{unit}"
            size_bytes /= 1024
        return f"{size_bytes:.2f}EB"

    @staticmethod
    def parse_workers(value: str) -> int:
        """
        Parse a worker count from the command line.
        Raises ValueError for non-integers or values below 1.
        """
        try:
            workers = int(value.strip())
        except ValueError:
            raise ValueError(f"Invalid worker count: '{value}'")
        if workers < 1:
            raise ValueError(f"Worker count must be at least 1: '{value}'")
        return workers
