# どこで: `src/hydrafix/core/__init__.py`。
# 何を: 変換エンジン（解像度/分類/スケーリング/平坦化/ハイドレーション）のパッケージ。
# なぜ: UI や保存形式に依存しない純粋な処理を 1 箇所へ閉じるため。
