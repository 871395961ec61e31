from typing import BinaryIO


class StorageProvider:
    def public_url(self, key: str) -> str:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def copy_in(self, src_stream: BinaryIO | bytes, key: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError
