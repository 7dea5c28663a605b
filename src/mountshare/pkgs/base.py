from abc import ABC, abstractmethod


class PackageManager(ABC):
    @abstractmethod
    def install(self, package):
        pass
