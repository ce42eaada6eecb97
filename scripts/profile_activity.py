"""Profile a forum export before serving it through the engine.

Prints category and escalation distributions, hourly/weekday activity and
reply latency so the peak-usage and analytics outputs can be sanity-checked
against the raw data.

Use:  python scripts/profile_activity.py --input data/sample_forum.json
"""
import argparse
import json
import sys
from pathlib import Path
from typing import Dict

import pandas as pd

WEEKDAY_NAMES = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']


def load_export(path: Path) -> Dict[str, pd.DataFrame]:
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except Exception as e:
        print(f"Failed to read {path}: {e}")
        sys.exit(1)
    posts = pd.DataFrame(data.get('posts', []))
    embedded = [r for p in data.get('posts', []) for r in p.get('replies', [])]
    replies = pd.DataFrame(embedded + data.get('replies', []))
    if not replies.empty:
        replies = replies.drop_duplicates(subset='id')
    escalations = pd.DataFrame(data.get('escalations', []))
    for df, cols in ((posts, ['createdAt']), (replies, ['createdAt']), (escalations, ['detectedAt', 'resolvedAt'])):
        for col in cols:
            if col in df.columns:
                df[col] = pd.to_datetime(df[col], utc=True)
    return {'posts': posts, 'replies': replies, 'escalations': escalations}


def activity_frame(frames: Dict[str, pd.DataFrame]) -> pd.DataFrame:
    stamps = [df['createdAt'] for df in (frames['posts'], frames['replies']) if 'createdAt' in df.columns]
    if not stamps:
        return pd.DataFrame(columns=['hour', 'weekday'])
    ts = pd.concat(stamps, ignore_index=True)
    # pandas counts Monday as 0; shift so Sunday is 0
    return pd.DataFrame({'hour': ts.dt.hour, 'weekday': (ts.dt.dayofweek + 1) % 7})


def reply_latency_hours(frames: Dict[str, pd.DataFrame]) -> pd.Series:
    posts, replies = frames['posts'], frames['replies']
    if replies.empty or posts.empty:
        return pd.Series(dtype=float)
    first = replies.groupby('postId')['createdAt'].min().rename('firstReplyAt')
    joined = posts.set_index('id').join(first, how='inner')
    return (joined['firstReplyAt'] - joined['createdAt']).dt.total_seconds() / 3600


def profile(frames: Dict[str, pd.DataFrame]) -> Dict:
    posts, replies, escalations = frames['posts'], frames['replies'], frames['escalations']
    print("=== Forum Activity Profile ===")
    print(f"Posts: {len(posts)} | Replies: {len(replies)} | Escalations: {len(escalations)}")
    print()
    summary: Dict = {'n_posts': int(len(posts)), 'n_replies': int(len(replies)), 'n_escalations': int(len(escalations))}
    if 'category' in posts.columns:
        counts = posts['category'].value_counts()
        print("Posts by category:")
        print(counts.to_string())
        print()
        summary['category_distribution'] = counts.to_dict()
    if 'escalationLevel' in posts.columns:
        counts = posts['escalationLevel'].value_counts()
        print("Posts by escalation level:")
        print(counts.to_string())
        print()
        summary['level_distribution'] = counts.to_dict()
    if 'status' in escalations.columns:
        counts = escalations['status'].value_counts()
        print("Escalations by status:")
        print(counts.to_string())
        print()
        summary['status_distribution'] = counts.to_dict()

    activity = activity_frame(frames)
    by_hour = activity['hour'].value_counts().reindex(range(24), fill_value=0)
    by_day = activity['weekday'].value_counts().reindex(range(7), fill_value=0)
    print("Activity by hour (UTC):")
    print(by_hour.to_string())
    print()
    print("Activity by weekday:")
    print(by_day.rename(index=dict(enumerate(WEEKDAY_NAMES))).to_string())
    print()
    summary['activity_by_hour'] = {int(k): int(v) for k, v in by_hour.items()}
    summary['activity_by_weekday'] = {int(k): int(v) for k, v in by_day.items()}

    latency = reply_latency_hours(frames)
    if not latency.empty:
        print(f"First reply latency: median {latency.median():.1f}h | p90 {latency.quantile(0.9):.1f}h")
        summary['first_reply_median_hours'] = round(float(latency.median()), 1)
    unanswered = len(posts) - len(latency)
    print(f"Unanswered posts: {unanswered}")
    summary['unanswered_posts'] = int(unanswered)
    print("==============================\n")
    return summary


def main():
    ap = argparse.ArgumentParser(description="Profile a forum export (posts, replies, escalations)")
    ap.add_argument('--input', required=True, help='Path to JSON forum export')
    ap.add_argument('--export-json-profile', help='Optional path to write JSON profile summary')
    args = ap.parse_args()

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input file not found: {input_path}")
        sys.exit(1)

    summary = profile(load_export(input_path))

    if args.export_json_profile:
        outp = Path(args.export_json_profile)
        outp.parent.mkdir(parents=True, exist_ok=True)
        outp.write_text(json.dumps(summary, indent=2, default=str), encoding='utf-8')
        print(f"JSON profile written to {outp}")


if __name__ == '__main__':
    main()
