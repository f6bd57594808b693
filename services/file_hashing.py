import hashlib


class FileHashingService:
    """
    Service for computing content hashes
    """

    @staticmethod
    def hash_bytes(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    async def hash_file(self, file_data: bytes) -> str:
        """
        Compute SHA-256 hash of file data
        """
        return self.hash_bytes(file_data)
