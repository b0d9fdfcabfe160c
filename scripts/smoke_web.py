import requests, sys

base = sys.argv[1] if len(sys.argv) > 1 else 'http://127.0.0.1:5000'

payload = {
    'amount_paid': '240',
    'medication_dispensed': '120mg',
    'medication_unit': 'units',
    'weeks_paid': '12 weeks',
    'weeks_received': '8',
    'notes': 'smoke check',
}

print('POSTing to', base + '/calculate')
try:
    r = requests.post(base + '/calculate', data=payload, timeout=10)
    print('POST status:', r.status_code)
    print('Result-page contains result-section:', 'id="result-section"' in r.text)
    print('Result-page shows $80.00 refund:', '$80.00' in r.text)
except requests.RequestException as e:
    print('POST ERROR', repr(e))
    sys.exit(2)

for path in ('/print', '/export/csv', '/export/backup'):
    try:
        r2 = requests.get(base + path, timeout=10)
        print(f'GET {path} status:', r2.status_code, r2.headers.get('Content-Type'))
    except requests.RequestException as e:
        print(f'GET {path} ERROR', repr(e))
        sys.exit(3)
