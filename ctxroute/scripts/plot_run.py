# ctxroute/scripts/plot_run.py
import os, argparse
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


# ---------- io helpers ----------
def load_stream(log_dir: str, name: str) -> pd.DataFrame:
    path = os.path.join(log_dir, name)
    if not os.path.exists(path):
        return pd.DataFrame()
    return pd.read_csv(path)

def smooth(series: pd.Series, w=15):
    return series.rolling(window=w, min_periods=1).mean()


# ---------- plotting ----------
def plot_run(log_dir: str, out_dir: str, smooth_w: int = 15) -> str:
    enc = load_stream(log_dir, "encounters.csv")
    qup = load_stream(log_dir, "qupdates.csv")
    os.makedirs(out_dir, exist_ok=True)

    plt.figure(figsize=(18, 5))

    # 1) social scores over time (mean over nodes)
    plt.subplot(1, 3, 1)
    if not enc.empty:
        g = enc.groupby("t")[["popularity", "tie"]].mean().sort_index()
        plt.plot(g.index, smooth(g["popularity"], smooth_w), label="popularity", linewidth=2)
        plt.plot(g.index, smooth(g["tie"], smooth_w), label="tie strength", linewidth=2)
        plt.legend()
    plt.xlabel("time"); plt.ylabel("score"); plt.title("Social scores")

    # 2) fraction of encounters where the neighbor passed the crisp gate
    plt.subplot(1, 3, 2)
    if not enc.empty:
        g = enc.groupby("t")[["neighbor_ok", "self_ok"]].mean().sort_index()
        plt.plot(g.index, smooth(g["neighbor_ok"], smooth_w), label="neighbor ok", linewidth=2)
        plt.plot(g.index, smooth(g["self_ok"], smooth_w), label="self ok", linewidth=2)
        plt.legend()
    plt.xlabel("time"); plt.ylabel("fraction"); plt.title("Crisp gate pass rate")

    # 3) mean value after each update, per strategy
    plt.subplot(1, 3, 3)
    if not qup.empty:
        for strategy, df in qup.groupby("strategy"):
            g = df.groupby("t")["new"].mean().sort_index()
            plt.plot(g.index, smooth(g, smooth_w), label=strategy, linewidth=2)
        plt.legend()
    plt.xlabel("time"); plt.ylabel("Q"); plt.title("Q after update")

    plt.tight_layout()
    out = os.path.join(out_dir, "run_overview.png")
    plt.savefig(out, dpi=150)
    plt.close()
    return out


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("log_dir", nargs="?", default="logs/default")
    ap.add_argument("--out", default="artifacts")
    args = ap.parse_args()
    print(f"[plot] wrote {plot_run(args.log_dir, args.out)}", flush=True)
