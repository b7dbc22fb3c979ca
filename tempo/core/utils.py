from .transposition import MATE_SCORE, MATE_THRESHOLD


def format_score(score):
    if abs(score) > MATE_THRESHOLD:
        mate_in = (MATE_SCORE - abs(score) + 1) // 2
        return f"mate {mate_in if score > 0 else -mate_in}"
    return f"cp {score}"


def format_info(d, score, nodes, elapsed_ms, move):
    move_str = move.uci() if move else "-"
    nps = int(nodes * 1000 / elapsed_ms) if elapsed_ms > 0 else 0
    return f"depth {d} score {format_score(score)} nodes {nodes} nps {nps} time {int(elapsed_ms)} move {move_str}"
