"""
Engine di calcolo
Progetto: Energy Billing (Gestionale Contratti Energia)

Algoritmi puri, senza dipendenze da FastAPI o dal database:
- periods: aritmetica dei periodi di fatturazione
- scheduler: periodi fatturabili e importi prorata per contratto
- invoice_lines: aggregazione degli importi in righe fattura
- expression: valutatore aritmetico sicuro
- index_evaluator: valori degli indici calcolati
"""
