from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .grouping import ComparisonView, unique_cheapest


@dataclass
class ComparisonReport:
    timestamp: str
    postal_code: str
    view: ComparisonView

    def summary_text(self, *, per_category: int = 5) -> str:
        v = self.view
        failed = [r for r in v.shop_results if r.error]
        lines = [
            f"Run: {self.timestamp}  (postal_code={self.postal_code})",
            f"Retailers: {', '.join(v.retailers) or '-'}  "
            f"Categories: {len(v.items_by_category)}  Shop failures: {len(failed)}",
        ]
        for r in failed:
            lines.append(f"  ! {r.retailer} ({r.shop_id}): {r.error}")

        tally = v.winner_tally()
        if tally:
            lines.append("Categories won: " + ", ".join(f"{r} {n}" for r, n in tally.items()))
        lines.append("")

        for cat in v.sorted_categories():
            winner = v.category_winners.get(cat)
            lines.append(f"[{cat}]  winner: {winner or 'none'}")
            for it in v.sorted_items(cat)[:per_category]:
                cheapest = unique_cheapest(it)
                cells = []
                for retailer in v.retailers:
                    info = it.prices.get(retailer)
                    if info is None:
                        continue
                    mark = "*" if retailer == cheapest else ""
                    cells.append(f"{retailer}: {info.price_string or 'N/A'}{mark}")
                diff = f"  (save ${it.price_difference:.2f})" if it.price_difference > 0 else ""
                lines.append(f"  - {it.item_name}{diff}")
                lines.append(f"      {'  '.join(cells)}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "postalCode": self.postal_code, **self.view.to_dict()}

    def write_json(self, path: str = "artifacts/comparison.json") -> str:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(self.to_dict(), indent=2))
        return str(out)


def build_report(view: ComparisonView, *, postal_code: str) -> ComparisonReport:
    return ComparisonReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        postal_code=postal_code,
        view=view,
    )
