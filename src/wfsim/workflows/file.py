KILOBYTES_IN_MEGABIT = 125
BYTES_IN_KILOBYTE = 1000


class File:
    """Representation of a file, that is used or produced by a task.
    Output files of a task are transferred to its children over
    network, so their size defines data transfer time.
    """

    def __init__(
            self,
            name: str,
            size: float,
    ) -> None:
        """

        :param name: name of the file.
        :param size: size of the file (in KB).
        """

        self.name = name
        self.size = size

    @classmethod
    def from_bytes(cls, name: str, size: float) -> "File":
        return cls(name=name, size=size / BYTES_IN_KILOBYTE)

    def size_in_megabits(self) -> float:
        return self.size / KILOBYTES_IN_MEGABIT

    def transfer_time(self, bandwidth_mbps: float) -> float:
        """Return time required to send file over network.

        :param bandwidth_mbps: network bandwidth (in Mbps).
        :return: transfer time in seconds.
        """

        return self.size_in_megabits() / bandwidth_mbps

    def __str__(self) -> str:
        return (f"<File "
                f"name = {self.name}, "
                f"size = {self.size} KB>")

    def __repr__(self) -> str:
        return (f"File("
                f"name = {self.name}, "
                f"size = {self.size})")

    def __eq__(self, other: "File") -> bool:
        return self.name == other.name and self.size == other.size

    def __hash__(self) -> int:
        return hash(self.name) ^ hash(self.size)
