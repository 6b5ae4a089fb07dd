#!/usr/bin/env python3
import argparse
import json
import os
from typing import Dict, List, Tuple

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import credentials, firestore

DEFAULT_SUBJECTS: List[Dict] = [
    {
        'id': 'primair-onderwijs',
        'name': 'Primair Onderwijs',
        'description': 'Onderwijsmateriaal voor de basisschool',
        'color': '#3B82F6',
        'icon': 'BookOpen',
        'sortOrder': 1,
        'topics': ['Rekenen', 'Taal', 'Engels', 'Wereldoriëntatie'],
    },
    {
        'id': 'voortgezet-onderwijs',
        'name': 'Voortgezet Onderwijs',
        'description': 'Onderwijsmateriaal voor het voortgezet onderwijs',
        'color': '#8B5CF6',
        'icon': 'BookMarked',
        'sortOrder': 2,
        'topics': [
            'Wiskunde A', 'Wiskunde B', 'Wiskunde C', 'Wiskunde D', 'Natuurkunde', 'Scheikunde',
            'Biologie', 'Engels', 'Nederlands', 'Aardrijkskunde', 'Geschiedenis',
        ],
    },
    {
        'id': 'hoger-onderwijs',
        'name': 'Hoger Onderwijs/Programmeren',
        'description': 'Materiaal voor hogere educatie en programmeertrainingen',
        'color': '#EC4899',
        'icon': 'Code',
        'sortOrder': 3,
        'topics': [
            'Bedrijfsstatistiek', 'Calculus', 'Economie', 'Statistiek', 'Kansberekening', 'Lineaire Algebra',
            'Verzamelingenleer', 'C', 'C#', 'C++', 'Java', 'Python', 'JavaScript', 'HTML', 'CSS', 'React',
            'SQL', 'MATLAB', 'R', 'SPSS',
        ],
    },
    {
        'id': 'examentraining',
        'name': 'Examentraining',
        'description': 'Gespecialiseerde voorbereiding op examens',
        'color': '#F59E0B',
        'icon': 'Target',
        'sortOrder': 4,
        'topics': ['Wiskunde A', 'Wiskunde B', 'Wiskunde C', 'Wiskunde D', 'Examenbundel', 'Oefentoetsen'],
    },
    {
        'id': 'groepslessen',
        'name': 'Groepslessen',
        'description': 'Materiaal voor groepsonderwijs',
        'color': '#10B981',
        'icon': 'Users',
        'sortOrder': 5,
        'topics': ['Wiskunde A', 'Wiskunde B', 'Wiskunde C', 'Programmeren', 'Natuurkunde', 'Scheikunde'],
    },
]


def init_firestore():
    if os.path.exists('firebase-credentials.json'):
        cred = credentials.Certificate('firebase-credentials.json')
    else:
        raw = (os.getenv('FIREBASE_CREDENTIALS', '') or '').strip()
        if not raw:
            raise RuntimeError('Missing firebase-credentials.json and FIREBASE_CREDENTIALS env var.')
        cred = credentials.Certificate(json.loads(raw))
    if not firebase_admin._apps:
        firebase_admin.initialize_app(cred)
    return firestore.client()


def seed_subjects(db, subjects, apply_changes: bool, replace_topics: bool = False) -> Tuple[int, int]:
    subjects_written = 0
    topics_written = 0
    for subject in subjects:
        subject_doc = {key: value for key, value in subject.items() if key not in {'id', 'topics'}}
        subject_ref = db.collection('subjects').document(subject['id'])
        topics_ref = subject_ref.collection('topics')
        existing_topics = list(topics_ref.stream())
        subjects_written += 1
        if existing_topics and not replace_topics:
            print(f"  {subject['name']}: {len(existing_topics)} topics present, leaving them alone")
            if apply_changes:
                subject_ref.set(subject_doc, merge=True)
            continue

        topics_written += len(subject['topics'])
        if not apply_changes:
            continue
        subject_ref.set(subject_doc, merge=True)
        batch = db.batch()
        for doc in existing_topics:
            batch.delete(doc.reference)
        for index, topic_name in enumerate(subject['topics'], start=1):
            batch.set(topics_ref.document(), {
                'name': topic_name,
                'description': f"Topic in {subject['name']}",
                'sortOrder': index,
            })
        batch.commit()
    return subjects_written, topics_written


def main():
    parser = argparse.ArgumentParser(description='Seed the default subjects and topics taxonomy.')
    parser.add_argument(
        '--apply',
        action='store_true',
        help='Apply changes. Without this flag, the script runs in dry-run mode.',
    )
    parser.add_argument(
        '--replace-topics',
        action='store_true',
        help='Replace topics of subjects that already have some.',
    )
    args = parser.parse_args()

    load_dotenv()
    db = init_firestore()
    subjects, topics = seed_subjects(db, DEFAULT_SUBJECTS, apply_changes=args.apply, replace_topics=args.replace_topics)
    mode = 'APPLY' if args.apply else 'DRY-RUN'
    print(f"[{mode}] subjects={subjects}, topics={topics}")
    if not args.apply:
        print('No changes were written. Re-run with --apply to persist.')


if __name__ == '__main__':
    main()
