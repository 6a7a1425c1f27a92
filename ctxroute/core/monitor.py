# ctxroute/core/monitor.py
import csv, os


class CSVMonitor:
    """
    Lightweight CSV logger with multiple streams:
      - encounters.csv   → one row per (node, peer) contact evaluation
      - qupdates.csv     → one row per value-table change (live / aging)
      - sync.csv         → one row per two-way synchronization
      - forwards.csv     → one row per message forwarding decision
    All files live under <root>/<exp_name>/ and are shared by every node.
    """
    ENCOUNTER_HEADER = ["t", "node", "peer", "popularity", "tie", "neighbor_ok", "self_ok"]
    QUPDATE_HEADER = ["t", "node", "strategy", "destination", "next_hop", "old", "new"]
    SYNC_HEADER = ["t", "a", "b", "changed"]
    FORWARD_HEADER = ["t", "node", "peer", "message_id", "destination", "priority",
                      "forward", "density", "copies"]

    def __init__(self, exp_name: str = "default", root: str = "logs"):
        self.log_dir = os.path.join(root, exp_name)
        os.makedirs(self.log_dir, exist_ok=True)
        self.encounters_path = self._init_stream("encounters.csv", self.ENCOUNTER_HEADER)
        self.qupdates_path = self._init_stream("qupdates.csv", self.QUPDATE_HEADER)
        self.sync_path = self._init_stream("sync.csv", self.SYNC_HEADER)
        self.forwards_path = self._init_stream("forwards.csv", self.FORWARD_HEADER)

    def _init_stream(self, name: str, header) -> str:
        path = os.path.join(self.log_dir, name)
        if not os.path.exists(path):
            with open(path, "w", newline="") as f:
                csv.writer(f).writerow(header)
        return path

    def _append(self, path: str, row):
        try:
            with open(path, "a", newline="") as f:
                csv.writer(f).writerow(row)
        except OSError:
            # never crash caller due to telemetry
            pass

    def log_encounter(self, t: float, node: str, peer: str, popularity: float, tie: float,
                      neighbor_ok: int, self_ok: int):
        self._append(self.encounters_path, [
            t, node, peer, float(popularity), float(tie), int(neighbor_ok), int(self_ok),
        ])

    def log_qupdate(self, t: float, node: str, strategy: str, destination: str,
                    next_hop: str, old: float, new: float):
        self._append(self.qupdates_path, [t, node, strategy, destination, next_hop,
                                          float(old), float(new)])

    def log_sync(self, t: float, a: str, b: str, changed: int):
        self._append(self.sync_path, [t, a, b, int(changed)])

    def log_forward(self, t: float, node: str, peer: str, message_id: str, destination: str,
                    priority: float, forward: bool, density: float, copies: int):
        self._append(self.forwards_path, [t, node, peer, message_id, destination,
                                          float(priority), int(forward), float(density), int(copies)])
